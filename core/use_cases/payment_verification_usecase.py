from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal
from typing import Any, AsyncIterator, Dict, List, Optional

from adapters.chain.subscription_contract import SubscriptionContractAdapter
from core.domain.enums.deployment_enums import PaymentStatus, TonNetwork
from core.domain.gateways.ton_chain_gateway_interface import TonChainGateway
from core.domain.schemas.onchain_types import ChainTransaction, PaymentMatch
from core.services.addresses import ensure_network, explorer_tx_url, format_for_network, raw_form
from core.services.normalize import Amount, to_nano
from core.services.polling import Clock, MonotonicClock, poll_until
from core.use_cases.gate_context import GateContext

logger = logging.getLogger(__name__)


def minimum_accepted(expected_nano: int, tolerance: float) -> int:
    """
    Smallest value accepted for `expected_nano`. The tolerance absorbs
    client-side fee estimation drift (0.99 -> up to 1% short).
    """
    return int((Decimal(int(expected_nano)) * Decimal(str(tolerance))).to_integral_value(rounding=ROUND_CEILING))


@dataclass
class PaymentVerificationUseCase:
    """
    Looks for an inbound purchase payment in a contract's transaction history.
    """

    chain: TonChainGateway
    network: TonNetwork
    purchase_keyword: str = "Subscribe"
    tolerance: float = 0.99
    scan_limit: int = 100
    clock: Optional[Clock] = None

    def __post_init__(self) -> None:
        if self.clock is None:
            self.clock = MonotonicClock()

    @classmethod
    def from_context(cls, ctx: GateContext) -> "PaymentVerificationUseCase":
        return cls(
            chain=ctx.chain,
            network=ctx.network,
            purchase_keyword=ctx.params.purchase_keyword,
            tolerance=ctx.params.payment_tolerance,
            scan_limit=ctx.params.payment_scan_limit,
            clock=ctx.clock,
        )

    def _is_purchase(self, tx: ChainTransaction) -> bool:
        return tx.is_internal and tx.comment == self.purchase_keyword

    def _match(self, tx: ChainTransaction, *, status: PaymentStatus, expected_nano: int) -> PaymentMatch:
        return PaymentMatch(
            found=status == PaymentStatus.FOUND,
            status=status,
            tx_hash=tx.hash_hex,
            from_address=format_for_network(tx.source, self.network, bounceable=True),
            amount_nano=tx.value_nano,
            expected_nano=expected_nano,
            timestamp=tx.utime,
            overpaid=status == PaymentStatus.FOUND and tx.value_nano > expected_nano,
            explorer_url=explorer_tx_url(tx.hash_hex, self.network),
        )

    def match_transactions(
        self,
        transactions: List[ChainTransaction],
        *,
        expected_nano: int,
        since_timestamp: Optional[int] = None,
    ) -> PaymentMatch:
        threshold = minimum_accepted(expected_nano, self.tolerance)
        underpaid: Optional[ChainTransaction] = None

        for tx in transactions:
            if since_timestamp is not None and tx.utime <= int(since_timestamp):
                continue
            if not self._is_purchase(tx):
                continue
            if tx.value_nano >= threshold:
                return self._match(tx, status=PaymentStatus.FOUND, expected_nano=expected_nano)
            if underpaid is None:
                underpaid = tx

        if underpaid is not None:
            logger.info(
                "Purchase %s below tolerance: %d < %d nanoton",
                underpaid.hash_hex,
                underpaid.value_nano,
                threshold,
            )
            return self._match(underpaid, status=PaymentStatus.UNDERPAID_REJECTED, expected_nano=expected_nano)

        return PaymentMatch.not_found(expected_nano)

    async def verify_payment(
        self,
        *,
        contract_address: str,
        expected_amount: Amount,
        since_timestamp: Optional[int] = None,
    ) -> PaymentMatch:
        """
        First inbound purchase worth at least `tolerance * expected_amount`.
        No match is a normal, retryable answer (NOT_FOUND), not an error.
        """
        contract = ensure_network(contract_address, self.network)
        expected_nano = to_nano(expected_amount)
        txs = await self.chain.get_transactions(raw_form(contract), limit=self.scan_limit)
        return self.match_transactions(txs, expected_nano=expected_nano, since_timestamp=since_timestamp)

    async def wait_for_payment(
        self,
        *,
        contract_address: str,
        expected_amount: Amount,
        since_timestamp: Optional[int] = None,
        timeout: float = 60.0,
        interval: float = 5.0,
    ) -> PaymentMatch:
        res = await poll_until(
            lambda: self.verify_payment(
                contract_address=contract_address,
                expected_amount=expected_amount,
                since_timestamp=since_timestamp,
            ),
            lambda m: m.found,
            timeout=timeout,
            interval=interval,
            clock=self.clock,
            label=f"payment[{contract_address}]",
        )
        if res.value is None:
            return PaymentMatch.not_found(to_nano(expected_amount))
        return res.value

    async def watch_transactions(
        self,
        address: str,
        *,
        interval: float = 30.0,
        batch_limit: int = 10,
        start_lt: int = 0,
    ) -> AsyncIterator[List[ChainTransaction]]:
        """
        Yield batches of transactions newer than the last seen logical time.
        Runs until the consuming task is cancelled.
        """
        raw = raw_form(ensure_network(address, self.network))
        last_lt = int(start_lt)
        while True:
            txs = await self.chain.get_transactions(raw, limit=batch_limit)
            fresh = [tx for tx in txs if tx.lt > last_lt]
            if fresh:
                last_lt = max(tx.lt for tx in fresh)
                yield sorted(fresh, key=lambda tx: tx.lt)
            await self.clock.sleep(interval)

    async def subscription_status(self, *, contract_address: str, subscriber: str) -> Dict[str, Any]:
        """
        Access check against the child contract itself, once a purchase landed.
        """
        contract = SubscriptionContractAdapter(self.chain, ensure_network(contract_address, self.network))
        user = ensure_network(subscriber, self.network)
        state = await contract.get_state()
        if not state.is_active:
            return {"contract_state": state.state, "active": False, "expiry": None}
        return {
            "contract_state": state.state,
            "active": await contract.is_active(raw_form(user)),
            "expiry": await contract.get_expiry(raw_form(user)),
        }
