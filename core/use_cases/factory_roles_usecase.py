from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from adapters.chain.subscription_factory import SubscriptionFactoryAdapter
from core.domain.enums.deployment_enums import FactoryRole, TonNetwork
from core.services.addresses import AddressLike, format_for_network, same_address
from core.services.polling import poll_until
from core.services.wallet_signer import WalletSigner
from core.use_cases.gate_context import GateContext

logger = logging.getLogger(__name__)

SET_DEPLOYER_GAS_NANO = 50_000_000


async def resolve_role(factory: SubscriptionFactoryAdapter, address: AddressLike) -> FactoryRole:
    """
    Tagged authorization check mirroring the factory's own:
    the owner may do everything, the deployer may only register deployments.
    """
    owner = await factory.get_owner()
    if owner is not None and same_address(owner, address):
        return FactoryRole.OWNER

    deployer = await factory.get_deployer()
    if deployer is not None and same_address(deployer, address):
        return FactoryRole.DEPLOYER

    return FactoryRole.NONE


@dataclass
class FactoryRolesUseCase:
    factory: SubscriptionFactoryAdapter
    network: TonNetwork
    signer: Optional[WalletSigner] = None
    acceptance_timeout: float = 60.0
    verify_timeout: float = 30.0
    poll_interval: float = 2.0

    @classmethod
    def from_context(cls, ctx: GateContext) -> "FactoryRolesUseCase":
        return cls(
            factory=ctx.factory,
            network=ctx.network,
            signer=ctx.signer,
            acceptance_timeout=ctx.params.acceptance_timeout,
            verify_timeout=ctx.params.visibility_timeout,
            poll_interval=ctx.params.poll_interval,
        )

    def _fmt(self, address: Any) -> Optional[str]:
        return format_for_network(address, self.network) if address is not None else None

    # ---------------- views ----------------

    async def describe(self) -> Dict[str, Any]:
        owner = await self.factory.get_owner()
        deployer = await self.factory.get_deployer()
        backend_role = None
        backend_wallet = None
        if self.signer is not None:
            backend_wallet = self.signer.friendly_address
            backend_role = (await resolve_role(self.factory, self.signer.address)).value
        return {
            "factory": self._fmt(self.factory.address),
            "owner": self._fmt(owner),
            "deployer": self._fmt(deployer),
            "backend_wallet": backend_wallet,
            "backend_role": backend_role,
        }

    # ---------------- owner-only (cold key) ----------------

    async def set_deployer(self, *, new_deployer: str) -> Dict[str, Any]:
        """
        Replace the factory's deployer. Revocation is set_deployer(owner).

        Must run with the owner's signer; the backend deployer key cannot do this.
        """
        if self.signer is None:
            raise RuntimeError("An owner signer is required to change the deployer")

        role = await resolve_role(self.factory, self.signer.address)
        if role is not FactoryRole.OWNER:
            raise PermissionError(f"Wallet {self.signer.friendly_address} is not the factory owner")

        body = self.factory.body_set_deployer(new_deployer=new_deployer)
        seqno = await self.signer.submit(self.factory.raw_address, body, SET_DEPLOYER_GAS_NANO, bounce=True)

        accepted = await self.signer.wait_accepted(seqno, timeout=self.acceptance_timeout)
        if not accepted.satisfied:
            return {"accepted": False, "verified": False, "seqno": seqno, "deployer": None}

        verified = await poll_until(
            self.factory.get_deployer,
            lambda d: d is not None and same_address(d, new_deployer),
            timeout=self.verify_timeout,
            interval=self.poll_interval,
            clock=self.signer.clock,
            label="getDeployer",
        )
        logger.info("SetDeployer seqno=%d verified=%s", seqno, verified.satisfied)
        return {
            "accepted": True,
            "verified": verified.satisfied,
            "seqno": seqno,
            "deployer": self._fmt(verified.value),
        }
