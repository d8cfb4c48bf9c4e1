from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from tonsdk.utils import Address

from adapters.chain.subscription_factory import SubscriptionFactoryAdapter
from core.domain.entities.deployment_outcome_entity import DeploymentOutcomeEntity
from core.domain.enums.deployment_enums import DeploymentState, TonNetwork
from core.domain.gateways.ton_chain_gateway_interface import TonChainGateway
from core.domain.repositories.deployment_outcome_repository_interface import DeploymentOutcomeRepository
from core.domain.schemas.onchain_types import AccountState, DeploymentConfirmation
from core.services.addresses import explorer_address_url, format_for_network, raw_form
from core.services.polling import Clock, MonotonicClock, poll_until
from core.use_cases.gate_context import GateContext

logger = logging.getLogger(__name__)

Lookup = Optional[Tuple[Address, Optional[AccountState]]]


@dataclass
class DeploymentConfirmationUseCase:
    """
    Watches the factory after the user's "deploy" transaction.

    The user signs with their own key, so the backend never sees a receipt;
    it polls getChildAddress(channel_id) and then requires the account to be
    `active`, because the getter can return a computed address before the
    contract exists. A timeout means UNKNOWN (re-check later), not FAILED.
    """

    chain: TonChainGateway
    factory: SubscriptionFactoryAdapter
    network: TonNetwork
    outcomes: Optional[DeploymentOutcomeRepository] = None
    interval: float = 5.0
    timeout: float = 60.0
    clock: Optional[Clock] = None

    def __post_init__(self) -> None:
        if self.clock is None:
            self.clock = MonotonicClock()

    @classmethod
    def from_context(cls, ctx: GateContext) -> "DeploymentConfirmationUseCase":
        return cls(
            chain=ctx.chain,
            factory=ctx.factory,
            network=ctx.network,
            outcomes=ctx.outcomes,
            interval=ctx.params.confirmation_interval,
            timeout=ctx.params.confirmation_timeout,
            clock=ctx.clock,
        )

    async def _lookup(self, channel_id: int) -> Lookup:
        address = await self.factory.get_child_address(channel_id)
        if address is None:
            return None
        state = await self.chain.get_account_state(raw_form(address))
        return address, state

    def _update_outcome(self, channel_id: int, state: DeploymentState, address: Optional[str], reason: Optional[str]) -> None:
        if self.outcomes is None:
            return
        current = self.outcomes.get(channel_id=channel_id) or DeploymentOutcomeEntity(channel_id=channel_id)
        current.state = state
        current.contract_address = address
        current.reason = reason
        self.outcomes.upsert(current)

    def _confirmation(self, channel_id: int, lookup: Lookup, *, elapsed: float, satisfied: bool) -> DeploymentConfirmation:
        address = format_for_network(lookup[0], self.network) if lookup else None
        if satisfied:
            return DeploymentConfirmation(
                channel_id=channel_id,
                state=DeploymentState.ACTIVE,
                contract_address=address,
                elapsed_sec=elapsed,
                explorer_url=explorer_address_url(address, self.network),
            )

        reason = "child address not reported by factory" if lookup is None else "contract allocated but not active"
        return DeploymentConfirmation(
            channel_id=channel_id,
            state=DeploymentState.UNKNOWN,
            contract_address=address,
            elapsed_sec=elapsed,
            explorer_url=explorer_address_url(self.factory.address, self.network),
            reason=reason,
        )

    async def check_once(self, *, channel_id: int) -> DeploymentConfirmation:
        lookup = await self._lookup(int(channel_id))
        active = lookup is not None and lookup[1] is not None and lookup[1].is_active
        return self._confirmation(int(channel_id), lookup, elapsed=0.0, satisfied=active)

    async def poll_deployment_confirmation(self, *, channel_id: int, timeout: Optional[float] = None) -> DeploymentConfirmation:
        channel_id = int(channel_id)
        self._update_outcome(channel_id, DeploymentState.DEPLOYING, None, None)

        res = await poll_until(
            lambda: self._lookup(channel_id),
            lambda p: p is not None and p[1] is not None and p[1].is_active,
            timeout=self.timeout if timeout is None else float(timeout),
            interval=self.interval,
            clock=self.clock,
            label=f"getChildAddress[{channel_id}]",
        )

        confirmation = self._confirmation(channel_id, res.value, elapsed=res.elapsed, satisfied=res.satisfied)
        if res.satisfied:
            logger.info("Channel %d contract active at %s after %.1fs", channel_id, confirmation.contract_address, res.elapsed)
        else:
            logger.warning("Channel %d deployment unknown after %.1fs: %s", channel_id, res.elapsed, confirmation.reason)

        self._update_outcome(channel_id, confirmation.state, confirmation.contract_address, confirmation.reason)
        return confirmation

    def acknowledge(self, *, channel_id: int) -> bool:
        """
        Drop the transient outcome once the caller has persisted it.
        """
        if self.outcomes is None:
            return False
        return self.outcomes.delete(channel_id=int(channel_id))
