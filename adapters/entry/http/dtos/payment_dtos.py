from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from core.domain.enums.deployment_enums import PaymentStatus


class VerifyPaymentRequest(BaseModel):
    contract_address: str
    expected_amount_ton: Decimal = Field(..., gt=0)
    since_timestamp: Optional[int] = Field(
        default=None,
        description="Unix seconds; only transactions strictly after it are considered.",
    )


class PaymentMatchOut(BaseModel):
    found: bool
    status: PaymentStatus
    tx_hash: Optional[str] = None
    from_address: Optional[str] = None
    amount_nano: Optional[int] = None
    amount_ton: Optional[str] = None
    expected_nano: int
    timestamp: Optional[int] = None
    overpaid: bool = False
    explorer_url: Optional[str] = None


class SubscriptionStatusOut(BaseModel):
    contract_address: str
    subscriber: str
    contract_state: str
    active: bool
    expiry: Optional[int] = None
