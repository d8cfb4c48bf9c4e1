from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx
from tonsdk.boc import Cell

from adapters.chain.tvm_stack import decode_stack, encode_arg, read_snake_string
from config import get_settings
from core.domain.gateways.ton_chain_gateway_interface import TonChainGateway
from core.domain.schemas.onchain_types import AccountState, ChainTransaction
from core.services.exceptions import ChainClientError

logger = logging.getLogger(__name__)


def _b64_to_hex(b64: str) -> str:
    return base64.b64decode(b64).hex() if b64 else ""


def _comment_from_boc(b64_boc: str) -> Optional[str]:
    """
    Text comment = 32 zero bits followed by UTF-8 bytes.
    """
    try:
        body = Cell.one_from_boc(base64.b64decode(b64_boc)).begin_parse()
        if len(body) < 32 or body.read_uint(32) != 0:
            return None
        return read_snake_string(body)
    except Exception:
        return None


def _extract_comment(in_msg: Dict[str, Any]) -> tuple[Optional[str], Optional[str]]:
    data = in_msg.get("msg_data") or {}
    kind = data.get("@type")
    if kind == "msg.dataText":
        text = data.get("text") or ""
        try:
            return base64.b64decode(text).decode("utf-8"), None
        except (ValueError, UnicodeDecodeError):
            return in_msg.get("message") or None, None
    if kind == "msg.dataRaw":
        body = data.get("body") or None
        comment = in_msg.get("message") or None
        if comment is None and body:
            comment = _comment_from_boc(body)
        return comment, body
    return in_msg.get("message") or None, None


def parse_transaction(raw: Dict[str, Any]) -> ChainTransaction:
    tx_id = raw.get("transaction_id") or {}
    in_msg = raw.get("in_msg") or {}
    comment, body = _extract_comment(in_msg)
    return ChainTransaction(
        lt=int(tx_id.get("lt") or 0),
        hash_hex=_b64_to_hex(tx_id.get("hash") or ""),
        utime=int(raw.get("utime") or 0),
        source=(in_msg.get("source") or None),
        destination=(in_msg.get("destination") or None),
        value_nano=int(in_msg.get("value") or 0),
        comment=comment,
        body_boc=body,
    )


@dataclass
class ToncenterClient(TonChainGateway):
    """
    Thin async wrapper over the toncenter v2 HTTP API.

    Every call returns the `result` member of the `{"ok": ..., "result": ...}`
    envelope or raises ChainClientError.
    """

    base_url: str
    api_key: str = ""
    timeout: float = 30.0
    transport: Optional[httpx.AsyncBaseTransport] = None

    @classmethod
    def from_settings(cls) -> "ToncenterClient":
        st = get_settings()
        return cls(base_url=(st.TONCENTER_URL or "").rstrip("/"), api_key=st.TONCENTER_API_KEY)

    def _headers(self) -> Dict[str, str]:
        return {"X-API-Key": self.api_key} if self.api_key else {}

    async def _call(self, method: str, *, params: Optional[dict] = None, payload: Optional[dict] = None) -> Any:
        url = f"{self.base_url}/{method}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as cli:
                if payload is None:
                    res = await cli.get(url, params=params, headers=self._headers())
                else:
                    res = await cli.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            raise ChainClientError(method=method, detail=str(exc)) from exc

        try:
            data = res.json() if res.content else {}
        except ValueError:
            data = {"error": res.text}

        if res.status_code >= 400 or not data.get("ok", False):
            raise ChainClientError(
                method=method,
                status_code=res.status_code,
                detail=data.get("error") or data.get("detail") or data,
            )
        return data.get("result")

    # ---------- reads ----------

    async def get_wallet_seqno(self, address: str) -> int:
        info = await self._call("getWalletInformation", params={"address": address})
        return int((info or {}).get("seqno") or 0)

    async def get_account_state(self, address: str) -> AccountState:
        info = await self._call("getAddressInformation", params={"address": address})
        info = info or {}
        return AccountState(
            address=address,
            state=str(info.get("state") or "uninitialized"),
            balance_nano=int(info.get("balance") or 0),
        )

    async def run_get_method(self, address: str, method: str, stack: Sequence[Any] = ()) -> List[Any]:
        payload = {"address": address, "method": method, "stack": [encode_arg(v) for v in stack]}
        result = await self._call("runGetMethod", payload=payload) or {}
        exit_code = int(result.get("exit_code") or 0)
        if exit_code not in (0, 1):
            raise ChainClientError(method=f"runGetMethod:{method}", detail=f"exit_code={exit_code}")
        try:
            return decode_stack(result.get("stack") or [])
        except ValueError as exc:
            raise ChainClientError(method=f"runGetMethod:{method}", detail=str(exc)) from exc

    async def get_transactions(
        self,
        address: str,
        *,
        limit: int = 100,
        lt: Optional[int] = None,
        tx_hash: Optional[str] = None,
    ) -> List[ChainTransaction]:
        params: Dict[str, Any] = {"address": address, "limit": int(limit), "archival": "true"}
        if lt is not None:
            params["lt"] = int(lt)
        if tx_hash:
            params["hash"] = tx_hash
        rows = await self._call("getTransactions", params=params) or []
        return [parse_transaction(r) for r in rows]

    # ---------- writes ----------

    async def send_boc(self, boc: bytes) -> None:
        await self._call("sendBoc", payload={"boc": base64.b64encode(bytes(boc)).decode()})
        logger.debug("sendBoc accepted (%d bytes)", len(boc))
