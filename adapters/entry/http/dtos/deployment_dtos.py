from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.domain.enums.deployment_enums import DeploymentState, RegistrationStatus


class RegisterDeploymentRequest(BaseModel):
    channel_id: int = Field(..., description="Caller-chosen channel id (signed 64-bit)")
    user_wallet: str = Field(..., description="Wallet that will send the 'deploy' transaction")
    price_ton: Decimal = Field(..., gt=0, description="Subscription price in TON")


class TonConnectMessageOut(BaseModel):
    address: str
    amount: str
    payload: Optional[str] = None


class TonConnectRequestOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    valid_until: int = Field(..., alias="validUntil")
    network: str
    messages: List[TonConnectMessageOut]


class RegisterDeploymentResponse(BaseModel):
    status: RegistrationStatus
    channel_id: int
    user_wallet: str
    price_nano: int
    submitted_seqno: int
    accepted_after_sec: Optional[float] = None
    visible_after_sec: Optional[float] = None
    wallet_explorer_url: Optional[str] = None
    transaction: Optional[TonConnectRequestOut] = Field(
        default=None,
        description="Only present once the registration is readable on-chain.",
    )


class DeploymentConfirmationOut(BaseModel):
    channel_id: int
    state: DeploymentState
    contract_address: Optional[str] = None
    elapsed_sec: float = 0.0
    explorer_url: Optional[str] = None
    reason: Optional[str] = None


class ConfirmDeploymentRequest(BaseModel):
    timeout_sec: Optional[float] = Field(default=None, ge=0, le=300)


class DeploymentOutcomeOut(BaseModel):
    channel_id: int
    state: DeploymentState
    user_wallet: Optional[str] = None
    price_nano: Optional[int] = None
    contract_address: Optional[str] = None
    submitted_seqno: Optional[int] = None
    reason: Optional[str] = None
    updated_at_iso: Optional[str] = None
