from __future__ import annotations

import base64
import time
from dataclasses import dataclass
from typing import Optional

from adapters.chain.subscription_factory import SubscriptionFactoryAdapter
from core.domain.enums.deployment_enums import TonNetwork
from core.domain.schemas.onchain_types import TonConnectMessage, TonConnectRequest
from core.services.addresses import AddressLike, expected_prefix, format_for_network
from core.services.exceptions import MalformedAddressNetworkError
from core.use_cases.gate_context import GateContext


def build_deploy_message(comment: str = "deploy") -> str:
    """
    Base64 BOC of the "deploy" text comment. Carries no parameters: the
    factory looks them up by sender in the registration made beforehand.
    """
    cell = SubscriptionFactoryAdapter.body_deploy_trigger(comment)
    return base64.b64encode(bytes(cell.to_boc(False))).decode()


def build_target_address(factory_address: AddressLike, network: TonNetwork) -> str:
    """
    Factory address as a wallet must see it: bounceable, url-safe, test-only
    flag matching `network` (kQ... on testnet, EQ... on mainnet).
    """
    formatted = format_for_network(factory_address, network, bounceable=True)
    prefix = expected_prefix(network, bounceable=True)
    if not formatted.startswith(prefix):
        raise MalformedAddressNetworkError(address=formatted, expected_network=network.value)
    return formatted


@dataclass
class DeploymentTransactionUseCase:
    """
    Builds what the end user signs. No server key and no network call involved.
    """

    factory_address: AddressLike
    network: TonNetwork
    deploy_value_nano: int = 700_000_000
    deploy_comment: str = "deploy"
    valid_for_sec: int = 3600

    @classmethod
    def from_context(cls, ctx: GateContext) -> "DeploymentTransactionUseCase":
        return cls(
            factory_address=ctx.factory.address,
            network=ctx.network,
            deploy_value_nano=ctx.params.deploy_value_nano,
            deploy_comment=ctx.params.deploy_comment,
            valid_for_sec=ctx.params.registration_ttl_sec,
        )

    def build_deploy_message(self) -> str:
        return build_deploy_message(self.deploy_comment)

    def build_target_address(self, network: Optional[TonNetwork] = None) -> str:
        target = self.network if network is None else TonNetwork(network)
        if target is not self.network:
            raise MalformedAddressNetworkError(
                address=format_for_network(self.factory_address, target),
                expected_network=self.network.value,
                msg=f"Factory is deployed on {self.network.value}, refusing to encode it for {target.value}",
            )
        return build_target_address(self.factory_address, target)

    def build_request(self, *, now: Optional[int] = None) -> TonConnectRequest:
        """
        TON Connect sendTransaction request. validUntil matches the
        registration expiry enforced by the factory.
        """
        issued = int(time.time()) if now is None else int(now)
        return TonConnectRequest(
            valid_until=issued + int(self.valid_for_sec),
            network=self.network.chain_id,
            messages=[
                TonConnectMessage(
                    address=self.build_target_address(),
                    amount=str(int(self.deploy_value_nano)),
                    payload=self.build_deploy_message(),
                )
            ],
        )
