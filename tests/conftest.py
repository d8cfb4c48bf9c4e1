"""Shared fixtures; the fakes themselves live in tests/fakes.py."""
from __future__ import annotations

import pytest

from adapters.chain.subscription_factory import SubscriptionFactoryAdapter
from adapters.external.memory.deployment_outcome_repository_memory import DeploymentOutcomeRepositoryMemory
from core.domain.enums.deployment_enums import TonNetwork
from core.services.wallet_signer import WalletSigner
from core.use_cases.gate_context import GateContext, ProtocolParams
from fakes import DEPLOYER, FACTORY, FakeChain, FakeClock, FakeWallet


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def chain(clock: FakeClock) -> FakeChain:
    return FakeChain(clock)


@pytest.fixture
def factory(chain: FakeChain) -> SubscriptionFactoryAdapter:
    return SubscriptionFactoryAdapter(chain, FACTORY)


@pytest.fixture
def signer(chain: FakeChain, clock: FakeClock) -> WalletSigner:
    return WalletSigner(chain, FakeWallet(DEPLOYER), network=TonNetwork.TESTNET, clock=clock)


@pytest.fixture
def outcomes() -> DeploymentOutcomeRepositoryMemory:
    return DeploymentOutcomeRepositoryMemory()


@pytest.fixture
def gate(chain, factory, signer, outcomes, clock) -> GateContext:
    return GateContext(
        network=TonNetwork.TESTNET,
        chain=chain,
        factory=factory,
        outcomes=outcomes,
        params=ProtocolParams(),
        signer=signer,
        clock=clock,
    )
