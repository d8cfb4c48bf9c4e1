# adapters/chain/subscription_contract.py
from __future__ import annotations

from tonsdk.utils import Address

from core.domain.gateways.ton_chain_gateway_interface import TonChainGateway
from core.domain.schemas.onchain_types import AccountState
from core.services.addresses import parse_address, raw_form
from core.services.exceptions import GetterDecodeError


class SubscriptionContractAdapter:
    """
    Per-channel child contract deployed by the factory.
    """

    def __init__(self, chain: TonChainGateway, address: str | Address):
        self.chain = chain
        self.address: Address = parse_address(address)

    @property
    def raw_address(self) -> str:
        return raw_form(self.address)

    async def get_state(self) -> AccountState:
        return await self.chain.get_account_state(self.raw_address)

    async def is_active(self, subscriber: str) -> bool:
        stack = await self.chain.run_get_method(self.raw_address, "isActive", [parse_address(subscriber)])
        if not stack or not isinstance(stack[0], int):
            raise GetterDecodeError(method="isActive", stack=stack)
        # TVM true is -1
        return stack[0] != 0

    async def get_expiry(self, subscriber: str) -> int:
        stack = await self.chain.run_get_method(self.raw_address, "getExpiry", [parse_address(subscriber)])
        if not stack or not isinstance(stack[0], int):
            raise GetterDecodeError(method="getExpiry", stack=stack)
        return int(stack[0])
