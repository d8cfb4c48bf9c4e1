# adapters/chain/subscription_factory.py
from __future__ import annotations

import logging
from typing import Any, List, Optional

from tonsdk.boc import Cell, begin_cell
from tonsdk.utils import Address

from adapters.chain.tvm_stack import TvmSlice
from core.domain.gateways.ton_chain_gateway_interface import TonChainGateway
from core.domain.schemas.onchain_types import DeploymentRegistration
from core.services.addresses import parse_address, raw_form
from core.services.exceptions import GetterDecodeError

logger = logging.getLogger(__name__)

# Message opcodes as emitted by the Tact compiler for the deployed factory.
OP_TEXT_COMMENT = 0
OP_REGISTER_DEPLOYMENT = 0x132208FE  # 320997630
OP_SET_DEPLOYER_DEFAULT = 0x4D1E4E6E

GETTER_REGISTERED_DEPLOYMENT = "getRegisteredDeployment"
GETTER_CHILD_ADDRESS_DEFAULT = "getSubscriptionAddress"
GETTER_OWNER = "owner"
GETTER_DEPLOYER = "deployer"


def text_comment_cell(text: str) -> Cell:
    """
    Standard text comment body: op=0 (32 bits) followed by UTF-8 bytes.
    """
    return begin_cell().store_uint(OP_TEXT_COMMENT, 32).store_string(text).end_cell()


def _first(stack: List[Any]) -> Any:
    return stack[0] if stack else None


class SubscriptionFactoryAdapter:
    """
    Thin wrapper for the on-chain SubscriptionFactory.

    - Deployer (backend key): body_register_deployment
    - Owner (cold key): body_set_deployer
    - User (own wallet): body_deploy_trigger
    - Views: get_registered_deployment, get_child_address, get_owner, get_deployer
    """

    def __init__(
        self,
        chain: TonChainGateway,
        address: str,
        *,
        child_address_getter: str = GETTER_CHILD_ADDRESS_DEFAULT,
        set_deployer_opcode: int = OP_SET_DEPLOYER_DEFAULT,
    ):
        if not address:
            raise RuntimeError("SubscriptionFactoryAdapter: address not configured")
        self.chain = chain
        self.address: Address = parse_address(address)
        self.child_address_getter = child_address_getter
        self.set_deployer_opcode = int(set_deployer_opcode)

    @property
    def raw_address(self) -> str:
        return raw_form(self.address)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    async def get_registered_deployment(self, user_wallet: str) -> Optional[DeploymentRegistration]:
        """
        Optional<{channelId, monthlyPrice, registeredAt}> keyed by the user's wallet.
        """
        user = parse_address(user_wallet)
        stack = await self.chain.run_get_method(self.raw_address, GETTER_REGISTERED_DEPLOYMENT, [user])

        value = _first(stack)
        if value is None:
            return None

        # Tact returns the struct as a tuple; tolerate a flattened stack too.
        fields = value if isinstance(value, list) else stack
        if len(fields) < 3 or not all(isinstance(f, int) for f in fields[:3]):
            raise GetterDecodeError(method=GETTER_REGISTERED_DEPLOYMENT, stack=stack)

        channel_id, price_nano, registered_at = (int(f) for f in fields[:3])
        return DeploymentRegistration(
            user_wallet=raw_form(user),
            channel_id=channel_id,
            price_nano=price_nano,
            registered_at=registered_at,
        )

    async def get_child_address(self, channel_id: int) -> Optional[Address]:
        stack = await self.chain.run_get_method(self.raw_address, self.child_address_getter, [int(channel_id)])
        return self._read_address(self.child_address_getter, stack)

    async def get_owner(self) -> Optional[Address]:
        stack = await self.chain.run_get_method(self.raw_address, GETTER_OWNER)
        return self._read_address(GETTER_OWNER, stack)

    async def get_deployer(self) -> Optional[Address]:
        stack = await self.chain.run_get_method(self.raw_address, GETTER_DEPLOYER)
        return self._read_address(GETTER_DEPLOYER, stack)

    @staticmethod
    def _read_address(method: str, stack: List[Any]) -> Optional[Address]:
        value = _first(stack)
        if value is None:
            return None
        if not isinstance(value, TvmSlice):
            raise GetterDecodeError(method=method, stack=stack)
        try:
            return value.read_address()
        except Exception as exc:
            raise GetterDecodeError(method=method, stack=stack) from exc

    # ---------------- body builders (for WalletSigner.submit) ----------------

    def body_register_deployment(self, *, user_wallet: str, channel_id: int, price_nano: int) -> Cell:
        return (
            begin_cell()
            .store_uint(OP_REGISTER_DEPLOYMENT, 32)
            .store_address(parse_address(user_wallet))
            .store_int(int(channel_id), 64)
            .store_coins(int(price_nano))
            .end_cell()
        )

    def body_set_deployer(self, *, new_deployer: str, query_id: int = 0) -> Cell:
        return (
            begin_cell()
            .store_uint(self.set_deployer_opcode, 32)
            .store_uint(int(query_id), 64)
            .store_address(parse_address(new_deployer))
            .end_cell()
        )

    @staticmethod
    def body_deploy_trigger(comment: str = "deploy") -> Cell:
        return text_comment_cell(comment)
