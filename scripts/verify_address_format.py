# scripts/verify_address_format.py

"""
Print every user-friendly encoding of an address and check it against the
configured network.

Usage (from project root):

    python -m scripts.verify_address_format              # the configured factory
    python -m scripts.verify_address_format <address>

Exit code 1 when the address is encoded for the other network.
"""

from __future__ import annotations

import argparse
import logging

from config import get_settings
from core.domain.enums.deployment_enums import TonNetwork
from core.services.addresses import ensure_network, expected_prefix, explorer_address_url, format_for_network, raw_form
from core.services.exceptions import MalformedAddressNetworkError

logger = logging.getLogger("verify_address_format")


def describe(address: str, network: TonNetwork) -> dict:
    return {
        "raw": raw_form(address),
        "mainnet_bounceable": format_for_network(address, TonNetwork.MAINNET, bounceable=True),
        "mainnet_non_bounceable": format_for_network(address, TonNetwork.MAINNET, bounceable=False),
        "testnet_bounceable": format_for_network(address, TonNetwork.TESTNET, bounceable=True),
        "testnet_non_bounceable": format_for_network(address, TonNetwork.TESTNET, bounceable=False),
        "expected_prefix": expected_prefix(network, bounceable=True),
        "explorer": explorer_address_url(address, network),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Show TON address encodings and check the network flag.")
    parser.add_argument("address", nargs="?", help="Address to check (defaults to FACTORY_CONTRACT_ADDRESS)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    s = get_settings()
    network = TonNetwork(s.TON_NETWORK)
    address = args.address or s.FACTORY_CONTRACT_ADDRESS
    if not address:
        parser.error("no address given and FACTORY_CONTRACT_ADDRESS is not set")

    for key, value in describe(address, network).items():
        logger.info("%-24s %s", key, value)

    try:
        ensure_network(address, network)
    except MalformedAddressNetworkError as exc:
        logger.error("MISMATCH: %s", exc)
        raise SystemExit(1)

    logger.info("OK: address is valid for %s", network.value)


if __name__ == "__main__":
    main()
