from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from core.domain.enums.deployment_enums import DeploymentState, PaymentStatus, RegistrationStatus
from core.services.normalize import from_nano


class AccountState(BaseModel):
    address: str
    state: str  # active | uninitialized | frozen
    balance_nano: int = 0

    @property
    def is_active(self) -> bool:
        return self.state == "active"


class ChainTransaction(BaseModel):
    """
    One transaction of an account, reduced to its inbound message.
    """

    lt: int
    hash_hex: str
    utime: int
    source: Optional[str] = None  # empty for external-in messages
    destination: Optional[str] = None
    value_nano: int = 0
    comment: Optional[str] = None
    body_boc: Optional[str] = None

    @property
    def is_internal(self) -> bool:
        return bool(self.source)


class DeploymentRegistration(BaseModel):
    """
    Record held by the factory, keyed by the user's wallet.
    """

    user_wallet: str
    channel_id: int
    price_nano: int
    registered_at: int

    def matches(self, *, channel_id: int, price_nano: int) -> bool:
        return self.channel_id == int(channel_id) and self.price_nano == int(price_nano)


class RegistrationResult(BaseModel):
    status: RegistrationStatus
    channel_id: int
    user_wallet: str
    price_nano: int
    submitted_seqno: int
    previous_registered_at: Optional[int] = None  # record visible before this write
    registration: Optional[DeploymentRegistration] = None
    accepted_after_sec: Optional[float] = None
    visible_after_sec: Optional[float] = None
    wallet_explorer_url: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.status == RegistrationStatus.CONFIRMED


class TonConnectMessage(BaseModel):
    address: str
    amount: str  # nanotons, decimal string
    payload: Optional[str] = None  # base64 BOC


class TonConnectRequest(BaseModel):
    valid_until: int = Field(..., alias="validUntil")
    network: str
    messages: List[TonConnectMessage]

    model_config = {"populate_by_name": True}


class DeploymentConfirmation(BaseModel):
    channel_id: int
    state: DeploymentState
    contract_address: Optional[str] = None
    elapsed_sec: float = 0.0
    explorer_url: Optional[str] = None
    reason: Optional[str] = None


class PaymentMatch(BaseModel):
    found: bool
    status: PaymentStatus
    tx_hash: Optional[str] = None
    from_address: Optional[str] = None
    amount_nano: Optional[int] = None
    expected_nano: int
    timestamp: Optional[int] = None
    overpaid: bool = False
    explorer_url: Optional[str] = None

    @property
    def amount(self) -> Optional[Decimal]:
        return None if self.amount_nano is None else from_nano(self.amount_nano)

    @classmethod
    def not_found(cls, expected_nano: int) -> "PaymentMatch":
        return cls(found=False, status=PaymentStatus.NOT_FOUND, expected_nano=int(expected_nano))
