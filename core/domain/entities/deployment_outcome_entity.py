from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict

from core.domain.enums.deployment_enums import DeploymentState

from .base_entity import MongoEntity


class DeploymentOutcomeEntity(MongoEntity):
    """
    Transient record of one channel's deployment (collection: deployment_outcomes).

    Lives only until ACTIVE/FAILED has been reported upstream; `expires_at`
    backs a TTL index so abandoned records disappear on their own.
    """

    channel_id: int
    state: DeploymentState = DeploymentState.PENDING
    user_wallet: Optional[str] = None
    price_nano: Optional[int] = None
    contract_address: Optional[str] = None
    submitted_seqno: Optional[int] = None
    reason: Optional[str] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(extra="allow", use_enum_values=True)
