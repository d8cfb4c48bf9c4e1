import asyncio

import pytest

from core.domain.enums.deployment_enums import FactoryRole, TonNetwork
from core.services.addresses import format_for_network
from core.services.wallet_signer import WalletSigner
from core.use_cases.factory_roles_usecase import FactoryRolesUseCase, resolve_role
from fakes import DEPLOYER, OWNER, USER, FakeWallet, make_address


def test_resolve_role(factory):
    assert asyncio.run(resolve_role(factory, OWNER)) == FactoryRole.OWNER
    assert asyncio.run(resolve_role(factory, DEPLOYER)) == FactoryRole.DEPLOYER
    assert asyncio.run(resolve_role(factory, USER)) == FactoryRole.NONE


def test_describe_reports_backend_role(gate):
    roles = asyncio.run(FactoryRolesUseCase.from_context(gate).describe())

    assert roles["owner"] == format_for_network(OWNER, TonNetwork.TESTNET)
    assert roles["deployer"] == format_for_network(DEPLOYER, TonNetwork.TESTNET)
    assert roles["backend_role"] == "DEPLOYER"
    assert roles["backend_wallet"].startswith("0Q")


def test_owner_rotates_deployer(factory, chain, clock):
    owner_signer = WalletSigner(chain, FakeWallet(OWNER), network=TonNetwork.TESTNET, clock=clock)
    use_case = FactoryRolesUseCase(factory=factory, network=TonNetwork.TESTNET, signer=owner_signer)
    new_deployer = make_address(0x2222)

    res = asyncio.run(use_case.set_deployer(new_deployer=new_deployer))

    assert res["accepted"] and res["verified"]
    assert res["deployer"] == format_for_network(new_deployer, TonNetwork.TESTNET)
    assert chain.deployer == new_deployer


def test_deployer_cannot_rotate_itself(gate, chain):
    use_case = FactoryRolesUseCase.from_context(gate)

    with pytest.raises(PermissionError):
        asyncio.run(use_case.set_deployer(new_deployer=USER))
    assert chain.sent == []
