from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from core.domain.schemas.onchain_types import AccountState, ChainTransaction


class TonChainGateway(ABC):
    """
    Read/broadcast surface of a TON node or HTTP API.

    `run_get_method` takes and returns decoded stack values:
    int, TvmSlice/TvmCell, nested lists for tuples, None for null.
    """

    @abstractmethod
    async def get_wallet_seqno(self, address: str) -> int:
        raise NotImplementedError

    @abstractmethod
    async def get_account_state(self, address: str) -> AccountState:
        raise NotImplementedError

    @abstractmethod
    async def run_get_method(self, address: str, method: str, stack: Sequence[Any] = ()) -> List[Any]:
        raise NotImplementedError

    @abstractmethod
    async def get_transactions(
        self,
        address: str,
        *,
        limit: int = 100,
        lt: Optional[int] = None,
        tx_hash: Optional[str] = None,
    ) -> List[ChainTransaction]:
        raise NotImplementedError

    @abstractmethod
    async def send_boc(self, boc: bytes) -> None:
        raise NotImplementedError
