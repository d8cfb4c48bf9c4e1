"""In-memory stand-ins for the chain, the wallet and the clock."""
from __future__ import annotations

import asyncio
import base64
import heapq
import itertools
import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from tonsdk.boc import Cell
from tonsdk.utils import Address

from adapters.chain.subscription_factory import OP_REGISTER_DEPLOYMENT, OP_SET_DEPLOYER_DEFAULT
from adapters.chain.tvm_stack import TvmSlice
from core.domain.gateways.ton_chain_gateway_interface import TonChainGateway
from core.domain.schemas.onchain_types import AccountState, ChainTransaction
from core.services.addresses import raw_form
from core.services.exceptions import ChainClientError


def make_address(n: int) -> str:
    return f"0:{n:064x}"


FACTORY = make_address(0xFAC)
OWNER = make_address(0x0A1)
DEPLOYER = make_address(0xDE1)
USER = make_address(0x05E)
CHILD = make_address(0xC41)


class FakeClock:
    """
    Virtual time. `sleep` advances the clock instead of waiting.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.t = float(start)

    def now(self) -> float:
        return self.t

    async def sleep(self, seconds: float) -> None:
        self.t += float(seconds)
        await asyncio.sleep(0)


class FakeMessage:
    def __init__(self, blob: bytes) -> None:
        self.blob = blob

    def to_boc(self, has_idx: bool = True) -> bytes:
        return self.blob


class FakeWallet:
    """
    Stands in for a tonsdk wallet contract: the "signed" message is JSON the
    FakeChain understands, the body is a real BOC.
    """

    def __init__(self, address: str) -> None:
        self.address = Address(address)

    def create_transfer_message(self, to_addr: str, amount: int, seqno: int, payload: Any = None) -> Dict[str, Any]:
        body = base64.b64encode(bytes(payload.to_boc(False))).decode() if payload is not None else None
        blob = json.dumps(
            {
                "from": raw_form(self.address),
                "to": raw_form(to_addr),
                "bounce": bool(Address(to_addr).is_bounceable),
                "test_only": bool(Address(to_addr).is_test_only),
                "amount": int(amount),
                "seqno": int(seqno),
                "body": body,
            }
        ).encode()
        return {"message": FakeMessage(blob)}


class FakeChain(TonChainGateway):
    """
    In-memory chain driven by a FakeClock.

    - A broadcast is accepted `accept_delay` seconds later (wallet seqno +1).
    - A RegisterDeployment from owner/deployer becomes readable through the
      factory getter `visibility_delay` seconds after acceptance.
    """

    def __init__(
        self,
        clock: FakeClock,
        *,
        factory: str = FACTORY,
        owner: str = OWNER,
        deployer: str = DEPLOYER,
        accept_delay: float = 3.0,
        visibility_delay: float = 4.0,
    ) -> None:
        self.clock = clock
        self.factory = factory
        self.owner = owner
        self.deployer = deployer
        self.accept_delay = accept_delay
        self.visibility_delay = visibility_delay

        self.seqnos: Dict[str, int] = {}
        self.registrations: Dict[str, Tuple[int, int, int]] = {}
        self.children: Dict[int, str] = {}
        self.states: Dict[str, str] = {factory: "active"}
        self.transactions: Dict[str, List[ChainTransaction]] = {}
        self.subscribers: Dict[Tuple[str, str], int] = {}

        self.drop_broadcasts = False
        self.fail_broadcasts = False
        self.send_attempts = 0
        self.sent: List[Dict[str, Any]] = []
        self.trace: List[Tuple[float, str]] = []

        self._queue: List[Tuple[float, int, Callable[[float], None]]] = []
        self._order = itertools.count()

    # ---------- scheduling ----------

    def schedule(self, delay: float, fn: Callable[[float], None]) -> None:
        heapq.heappush(self._queue, (self.clock.now() + float(delay), next(self._order), fn))

    def _schedule_at(self, at: float, fn: Callable[[float], None]) -> None:
        heapq.heappush(self._queue, (float(at), next(self._order), fn))

    def _advance(self) -> None:
        while self._queue and self._queue[0][0] <= self.clock.now():
            at, _, fn = heapq.heappop(self._queue)
            fn(at)

    # ---------- test helpers ----------

    def simulate_user_deploy(
        self,
        channel_id: int,
        *,
        child: str = CHILD,
        allocate_after: float,
        active_after: Optional[float],
    ) -> None:
        self.schedule(allocate_after, lambda _at: self.children.__setitem__(int(channel_id), child))
        if active_after is not None:
            self.schedule(active_after, lambda _at: self.states.__setitem__(child, "active"))

    def add_transaction(self, address: str, tx: ChainTransaction) -> None:
        self.transactions.setdefault(address, []).insert(0, tx)

    def getter_times(self, method: str) -> List[float]:
        return [t for t, name in self.trace if name == f"get:{method}"]

    def event_times(self, name: str) -> List[float]:
        return [t for t, n in self.trace if n == name]

    # ---------- message effects ----------

    def _accept(self, msg: Dict[str, Any], at: float) -> None:
        self.seqnos[msg["from"]] = int(msg["seqno"]) + 1
        self.trace.append((at, "accepted"))

        if msg["to"] != self.factory or not msg.get("body"):
            return

        reader = Cell.one_from_boc(base64.b64decode(msg["body"])).begin_parse()
        op = reader.read_uint(32)
        sender = msg["from"]

        if op == OP_REGISTER_DEPLOYMENT and sender in (self.owner, self.deployer):
            user = raw_form(reader.read_msg_addr())
            channel_id = reader.read_int(64)
            price = reader.read_coins()
            record = (channel_id, price, int(at))
            self._schedule_at(at + self.visibility_delay, lambda _t: self.registrations.__setitem__(user, record))
        elif op == OP_SET_DEPLOYER_DEFAULT and sender == self.owner:
            reader.read_uint(64)
            self.deployer = raw_form(reader.read_msg_addr())

    # ---------- TonChainGateway ----------

    async def get_wallet_seqno(self, address: str) -> int:
        self._advance()
        return self.seqnos.get(address, 0)

    async def get_account_state(self, address: str) -> AccountState:
        self._advance()
        return AccountState(address=address, state=self.states.get(address, "uninitialized"))

    async def run_get_method(self, address: str, method: str, stack: Sequence[Any] = ()) -> List[Any]:
        self._advance()
        self.trace.append((self.clock.now(), f"get:{method}"))

        if address == self.factory:
            if method == "getRegisteredDeployment":
                record = self.registrations.get(raw_form(stack[0]))
                return [list(record)] if record else [None]
            if method == "getSubscriptionAddress":
                child = self.children.get(int(stack[0]))
                return [TvmSlice.from_address(Address(child))] if child else [None]
            if method == "owner":
                return [TvmSlice.from_address(Address(self.owner))]
            if method == "deployer":
                return [TvmSlice.from_address(Address(self.deployer))]
        else:
            key = (address, raw_form(stack[0])) if stack else None
            if method == "isActive":
                expiry = self.subscribers.get(key, 0)
                return [-1 if expiry > 0 else 0]
            if method == "getExpiry":
                return [self.subscribers.get(key, 0)]

        raise ChainClientError(method=f"runGetMethod:{method}", detail="exit_code=11")

    async def get_transactions(
        self,
        address: str,
        *,
        limit: int = 100,
        lt: Optional[int] = None,
        tx_hash: Optional[str] = None,
    ) -> List[ChainTransaction]:
        self._advance()
        return list(self.transactions.get(address, []))[: int(limit)]

    async def send_boc(self, boc: bytes) -> None:
        self._advance()
        self.send_attempts += 1
        if self.fail_broadcasts:
            raise ChainClientError(method="sendBoc", status_code=500, detail="node unavailable")

        msg = json.loads(bytes(boc).decode())
        current = self.seqnos.get(msg["from"], 0)
        if int(msg["seqno"]) != current:
            raise ChainClientError(method="sendBoc", status_code=400, detail=f"seqno {msg['seqno']} != {current}")

        msg["sent_at"] = self.clock.now()
        self.sent.append(msg)
        self.trace.append((self.clock.now(), "sent"))
        if self.drop_broadcasts:
            return
        self.schedule(self.accept_delay, lambda at: self._accept(msg, at))


def purchase(
    lt: int,
    value_nano: int,
    *,
    utime: int = 1_700_000_000,
    comment: Optional[str] = "Subscribe",
    source: Optional[str] = USER,
    destination: str = CHILD,
) -> ChainTransaction:
    return ChainTransaction(
        lt=lt,
        hash_hex=f"{lt:064x}",
        utime=utime,
        source=source,
        destination=destination,
        value_nano=value_nano,
        comment=comment,
    )


