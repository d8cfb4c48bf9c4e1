from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from adapters.chain.subscription_factory import SubscriptionFactoryAdapter
from core.domain.entities.deployment_outcome_entity import DeploymentOutcomeEntity
from core.domain.enums.deployment_enums import DeploymentState, RegistrationStatus, TonNetwork
from core.domain.repositories.deployment_outcome_repository_interface import DeploymentOutcomeRepository
from core.domain.schemas.onchain_types import DeploymentRegistration, RegistrationResult
from core.services.addresses import ensure_network, explorer_address_url, raw_form
from core.services.exceptions import BroadcastError, GetterDecodeError, UnauthorizedDeployerError
from core.services.normalize import Amount, _require_channel_id, _require_positive_price
from core.services.polling import Clock, MonotonicClock, poll_until
from core.services.wallet_signer import WalletSigner
from core.use_cases.factory_roles_usecase import resolve_role
from core.use_cases.gate_context import GateContext

logger = logging.getLogger(__name__)


@dataclass
class DeploymentRegistrationUseCase:
    """
    Registers deployment parameters in the factory and confirms them in two phases.

    Phase 1 (acceptance): the deployer wallet's seqno moves past the one used
    for RegisterDeployment.
    Phase 2 (visibility): getRegisteredDeployment(user_wallet) returns the
    submitted record.

    The user's "deploy" transaction depends on the record being readable, so
    it is only handed out after Phase 2. Phase 2 never starts before Phase 1.
    """

    signer: WalletSigner
    factory: SubscriptionFactoryAdapter
    network: TonNetwork
    outcomes: Optional[DeploymentOutcomeRepository] = None
    registration_gas_nano: int = 20_000_000
    poll_interval: float = 2.0
    acceptance_timeout: float = 60.0
    visibility_timeout: float = 30.0
    check_role: bool = True
    clock: Optional[Clock] = None

    def __post_init__(self) -> None:
        if self.clock is None:
            self.clock = self.signer.clock or MonotonicClock()

    @classmethod
    def from_context(cls, ctx: GateContext) -> "DeploymentRegistrationUseCase":
        return cls(
            signer=ctx.require_signer(),
            factory=ctx.factory,
            network=ctx.network,
            outcomes=ctx.outcomes,
            registration_gas_nano=ctx.params.registration_gas_nano,
            poll_interval=ctx.params.poll_interval,
            acceptance_timeout=ctx.params.acceptance_timeout,
            visibility_timeout=ctx.params.visibility_timeout,
            clock=ctx.clock,
        )

    # ---------------- outcome bookkeeping ----------------

    def _record(
        self,
        *,
        channel_id: int,
        state: DeploymentState,
        user_wallet: str,
        price_nano: int,
        seqno: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        if self.outcomes is None:
            return
        self.outcomes.upsert(
            DeploymentOutcomeEntity(
                channel_id=channel_id,
                state=state,
                user_wallet=user_wallet,
                price_nano=price_nano,
                submitted_seqno=seqno,
                reason=reason,
            )
        )

    # ---------------- phases ----------------

    async def _snapshot(self, user_wallet: str) -> Optional[DeploymentRegistration]:
        try:
            return await self.factory.get_registered_deployment(user_wallet)
        except GetterDecodeError as e:
            logger.warning("Could not read the current registration of %s before submitting: %s", user_wallet, e)
            return None

    async def await_visibility(
        self,
        *,
        channel_id: int,
        user_wallet: str,
        price_nano: int,
        newer_than: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """
        Phase 2 on its own. Also the retry path after VISIBILITY_TIMEOUT:
        the registration was accepted, so it is polled again, not resubmitted.

        `newer_than` is the registered_at of the record that was visible
        before submitting; only a later record counts as this write.
        """

        def landed(reg: Optional[DeploymentRegistration]) -> bool:
            if reg is None or not reg.matches(channel_id=channel_id, price_nano=price_nano):
                return False
            return newer_than is None or reg.registered_at > newer_than

        return await poll_until(
            lambda: self.factory.get_registered_deployment(user_wallet),
            landed,
            timeout=self.visibility_timeout if timeout is None else float(timeout),
            interval=self.poll_interval,
            clock=self.clock,
            label=f"getRegisteredDeployment[{channel_id}]",
        )

    async def register_deployment(self, *, channel_id: int, user_wallet: str, price_ton: Amount) -> RegistrationResult:
        channel_id = _require_channel_id(channel_id)
        price_nano = _require_positive_price(price_ton)
        user = ensure_network(user_wallet, self.network)
        user_raw = raw_form(user)

        if self.check_role:
            role = await resolve_role(self.factory, self.signer.address)
            if not role.can_register:
                raise UnauthorizedDeployerError(
                    wallet_address=self.signer.friendly_address,
                    factory_address=raw_form(self.factory.address),
                )

        logger.info(
            "Registering deployment channel=%d user=%s price=%d nanoton",
            channel_id,
            user_raw,
            price_nano,
        )
        self._record(channel_id=channel_id, state=DeploymentState.PENDING, user_wallet=user_raw, price_nano=price_nano)

        previous = await self._snapshot(user_raw)
        newer_than = previous.registered_at if previous is not None else None

        body = self.factory.body_register_deployment(user_wallet=user_raw, channel_id=channel_id, price_nano=price_nano)
        try:
            seqno = await self.signer.submit(self.factory.raw_address, body, self.registration_gas_nano, bounce=True)
        except BroadcastError as e:
            self._record(
                channel_id=channel_id,
                state=DeploymentState.FAILED,
                user_wallet=user_raw,
                price_nano=price_nano,
                seqno=e.seqno,
                reason=str(e),
            )
            raise

        def result(status: RegistrationStatus, **extra) -> RegistrationResult:
            return RegistrationResult(
                status=status,
                channel_id=channel_id,
                user_wallet=user_raw,
                price_nano=price_nano,
                submitted_seqno=seqno,
                previous_registered_at=newer_than,
                wallet_explorer_url=explorer_address_url(self.signer.address, self.network),
                **extra,
            )

        # Phase 1: acceptance
        accepted = await self.signer.wait_accepted(seqno, timeout=self.acceptance_timeout)
        if not accepted.satisfied:
            logger.warning("RegisterDeployment channel=%d: seqno %d not accepted in %.0fs", channel_id, seqno, self.acceptance_timeout)
            self._record(
                channel_id=channel_id,
                state=DeploymentState.PENDING,
                user_wallet=user_raw,
                price_nano=price_nano,
                seqno=seqno,
                reason=RegistrationStatus.ACCEPTANCE_TIMEOUT.value,
            )
            return result(RegistrationStatus.ACCEPTANCE_TIMEOUT)

        logger.info("RegisterDeployment channel=%d accepted after %.1fs", channel_id, accepted.elapsed)

        # Phase 2: visibility
        visible = await self.await_visibility(
            channel_id=channel_id,
            user_wallet=user_raw,
            price_nano=price_nano,
            newer_than=newer_than,
        )
        if not visible.satisfied:
            logger.warning("RegisterDeployment channel=%d accepted but not visible after %.0fs", channel_id, visible.elapsed)
            self._record(
                channel_id=channel_id,
                state=DeploymentState.PENDING,
                user_wallet=user_raw,
                price_nano=price_nano,
                seqno=seqno,
                reason=RegistrationStatus.VISIBILITY_TIMEOUT.value,
            )
            return result(
                RegistrationStatus.VISIBILITY_TIMEOUT,
                accepted_after_sec=accepted.elapsed,
            )

        registration: DeploymentRegistration = visible.value
        logger.info("RegisterDeployment channel=%d visible after %.1fs", channel_id, visible.elapsed)
        self._record(
            channel_id=channel_id,
            state=DeploymentState.AWAITING_USER_PAYMENT,
            user_wallet=user_raw,
            price_nano=price_nano,
            seqno=seqno,
        )
        return result(
            RegistrationStatus.CONFIRMED,
            registration=registration,
            accepted_after_sec=accepted.elapsed,
            visible_after_sec=visible.elapsed,
        )
