from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from tonsdk.boc import Cell
from tonsdk.contract.wallet import WalletVersionEnum, Wallets
from tonsdk.crypto.exceptions import InvalidMnemonicsError

from core.domain.enums.deployment_enums import TonNetwork
from core.domain.gateways.ton_chain_gateway_interface import TonChainGateway
from core.services.addresses import format_for_network, raw_form
from core.services.exceptions import BroadcastError
from core.services.polling import Clock, MonotonicClock, PollResult, poll_until

logger = logging.getLogger(__name__)


class WalletSigner:
    """
    Single hot wallet used to sign backend-originated messages.

    Responsibilities:
    - Read the on-chain seqno once per logical operation.
    - Build, sign and broadcast the transfer envelope.
    - Serialize submissions: one lock per instance, one instance per wallet.
    - Never reuse a seqno whose transfer is still pending acceptance.

    Broadcast failures raise BroadcastError and are not retried here.
    """

    def __init__(
        self,
        chain: TonChainGateway,
        wallet: Any,
        *,
        network: TonNetwork,
        clock: Optional[Clock] = None,
        acceptance_timeout: float = 60.0,
        poll_interval: float = 2.0,
    ):
        self.chain = chain
        self.wallet = wallet
        self.network = network
        self.clock = clock or MonotonicClock()
        self.acceptance_timeout = float(acceptance_timeout)
        self.poll_interval = float(poll_interval)
        self._lock = asyncio.Lock()
        self._pending_seqno: Optional[int] = None

    @classmethod
    def from_mnemonic(
        cls,
        chain: TonChainGateway,
        mnemonic: str,
        *,
        network: TonNetwork,
        **kwargs: Any,
    ) -> "WalletSigner":
        words = (mnemonic or "").split()
        if len(words) != 24:
            raise ValueError("Wallet mnemonic must contain 24 words")
        try:
            _words, _pub, _priv, wallet = Wallets.from_mnemonics(words, WalletVersionEnum.v4r2, 0)
        except InvalidMnemonicsError as exc:
            raise ValueError("Wallet mnemonic failed checksum validation") from exc
        return cls(chain, wallet, network=network, **kwargs)

    # ---------- identity ----------

    @property
    def address(self) -> str:
        return raw_form(self.wallet.address)

    @property
    def friendly_address(self) -> str:
        return format_for_network(self.wallet.address, self.network, bounceable=False)

    @property
    def pending_seqno(self) -> Optional[int]:
        return self._pending_seqno

    # ---------- seqno ----------

    async def current_seqno(self) -> int:
        return await self.chain.get_wallet_seqno(self.address)

    async def wait_accepted(self, seqno: int, *, timeout: Optional[float] = None) -> PollResult[int]:
        """
        Poll until the wallet seqno exceeds `seqno`, i.e. the transfer signed
        with it was accepted into a block.
        """
        result = await poll_until(
            self.current_seqno,
            lambda current: current > seqno,
            timeout=self.acceptance_timeout if timeout is None else float(timeout),
            interval=self.poll_interval,
            clock=self.clock,
            label=f"seqno>{seqno} [{self.friendly_address}]",
        )
        if result.satisfied and self._pending_seqno is not None and self._pending_seqno <= seqno:
            self._pending_seqno = None
        return result

    async def _next_free_seqno(self) -> int:
        seqno = await self.current_seqno()
        pending = self._pending_seqno
        if pending is None or seqno > pending:
            return seqno

        logger.info("Wallet %s: seqno %d still pending, waiting for acceptance", self.friendly_address, pending)
        res = await self.wait_accepted(pending)
        if res.satisfied:
            return int(res.value)

        # Wallet v4 transfers expire after 60s, so an unaccepted one can no
        # longer land once the acceptance window is over.
        logger.warning(
            "Wallet %s: seqno %d never accepted within %.0fs, reusing it",
            self.friendly_address,
            pending,
            self.acceptance_timeout,
        )
        self._pending_seqno = None
        return await self.current_seqno()

    # ---------- public API ----------

    async def submit(self, destination: str, body: Optional[Cell], value_nano: int, *, bounce: bool = True) -> int:
        """
        Sign and broadcast one internal message from this wallet.

        Returns the seqno used. The transfer is accepted once the on-chain
        seqno becomes greater than it (see `wait_accepted`).
        """
        async with self._lock:
            seqno = await self._next_free_seqno()
            to_addr = format_for_network(destination, self.network, bounceable=bounce)

            try:
                query = self.wallet.create_transfer_message(to_addr, int(value_nano), seqno, payload=body)
                boc = bytes(query["message"].to_boc(False))
                await self.chain.send_boc(boc)
            except Exception as exc:
                logger.error("Wallet %s: broadcast with seqno %d failed: %s", self.friendly_address, seqno, exc)
                raise BroadcastError(wallet_address=self.friendly_address, seqno=seqno, cause=exc) from exc

            self._pending_seqno = seqno
            logger.info(
                "Wallet %s: sent %d nanoton to %s with seqno %d",
                self.friendly_address,
                int(value_nano),
                to_addr,
                seqno,
            )
            return seqno
