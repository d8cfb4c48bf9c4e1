# scripts/rotate_deployer.py

"""
Replace (or revoke) the factory's deployer wallet.

Must be signed by the factory OWNER, whose mnemonic is a cold key and is
never part of the service configuration. Revocation is rotating the
deployer back to the owner itself.

Usage (from project root):

    OWNER_MNEMONIC="word1 ... word24" python -m scripts.rotate_deployer --new-deployer <address>
    OWNER_MNEMONIC="word1 ... word24" python -m scripts.rotate_deployer --revoke

The script waits for the wallet seqno to advance and then for getDeployer to
report the new address.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os

from config import get_settings
from core.domain.enums.deployment_enums import TonNetwork
from core.services.addresses import ensure_network, format_for_network
from core.services.wallet_signer import WalletSigner
from core.use_cases.factory_roles_usecase import FactoryRolesUseCase
from core.use_cases.gate_context import GateContext

logger = logging.getLogger("rotate_deployer")


async def rotate(new_deployer: str | None, revoke: bool) -> int:
    s = get_settings()
    network = TonNetwork(s.TON_NETWORK)

    mnemonic = os.getenv("OWNER_MNEMONIC", "")
    if not mnemonic:
        logger.error("OWNER_MNEMONIC is not set")
        return 2

    ctx = GateContext.from_settings(s)
    params = ctx.params
    owner_signer = WalletSigner.from_mnemonic(
        ctx.chain,
        mnemonic,
        network=network,
        clock=ctx.clock,
        acceptance_timeout=params.acceptance_timeout,
        poll_interval=params.poll_interval,
    )

    target = owner_signer.address if revoke else new_deployer
    target = format_for_network(ensure_network(target, network), network)

    use_case = FactoryRolesUseCase(
        factory=ctx.factory,
        network=network,
        signer=owner_signer,
        acceptance_timeout=params.acceptance_timeout,
        verify_timeout=params.visibility_timeout,
        poll_interval=params.poll_interval,
    )

    before = await use_case.describe()
    logger.info("Factory %s: owner=%s deployer=%s", before["factory"], before["owner"], before["deployer"])
    logger.info("Setting deployer to %s", target)

    result = await use_case.set_deployer(new_deployer=target)
    if not result["accepted"]:
        logger.error("SetDeployer (seqno %d) was not accepted; nothing changed on-chain", result["seqno"])
        return 1
    if not result["verified"]:
        logger.warning("SetDeployer accepted but getDeployer still reports %s", result["deployer"])
        return 1

    logger.info("Deployer is now %s", result["deployer"])
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Rotate or revoke the subscription factory deployer.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--new-deployer", help="Address of the new deployer wallet")
    group.add_argument("--revoke", action="store_true", help="Set the deployer back to the owner")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    raise SystemExit(asyncio.run(rotate(args.new_deployer, args.revoke)))


if __name__ == "__main__":
    main()
