# scripts/watch_purchases.py

"""
Follow a channel contract and log every purchase as it lands.

Usage (from project root):

    python -m scripts.watch_purchases <contract_address> --price 10 [--interval 30]

Stops on Ctrl+C.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from decimal import Decimal

from core.domain.enums.deployment_enums import PaymentStatus
from core.services.normalize import to_nano
from core.use_cases.gate_context import GateContext
from core.use_cases.payment_verification_usecase import PaymentVerificationUseCase

logger = logging.getLogger("watch_purchases")


async def watch(contract_address: str, price: Decimal, interval: float) -> None:
    use_case = PaymentVerificationUseCase.from_context(GateContext.from_settings())
    expected_nano = to_nano(price)

    async for batch in use_case.watch_transactions(contract_address, interval=interval):
        for tx in batch:
            match = use_case.match_transactions([tx], expected_nano=expected_nano)
            if match.status == PaymentStatus.NOT_FOUND:
                logger.debug("lt=%d: not a purchase", tx.lt)
                continue
            logger.info(
                "%s from %s: %s TON (%s)",
                match.status.value,
                match.from_address,
                match.amount,
                match.explorer_url,
            )


def main() -> None:
    parser = argparse.ArgumentParser(description="Log purchases sent to a subscription contract.")
    parser.add_argument("contract_address")
    parser.add_argument("--price", type=Decimal, required=True, help="Expected price in TON")
    parser.add_argument("--interval", type=float, default=30.0, help="Seconds between polls")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    try:
        asyncio.run(watch(args.contract_address, args.price, args.interval))
    except KeyboardInterrupt:
        logger.info("Stopped.")


if __name__ == "__main__":
    main()
