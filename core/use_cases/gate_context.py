from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from adapters.chain.subscription_factory import SubscriptionFactoryAdapter
from adapters.chain.toncenter_client import ToncenterClient
from adapters.external.memory.deployment_outcome_repository_memory import DeploymentOutcomeRepositoryMemory
from config import Settings, get_settings
from core.domain.enums.deployment_enums import TonNetwork
from core.domain.gateways.ton_chain_gateway_interface import TonChainGateway
from core.domain.repositories.deployment_outcome_repository_interface import DeploymentOutcomeRepository
from core.services.addresses import ensure_network
from core.services.normalize import to_nano
from core.services.polling import Clock, MonotonicClock
from core.services.wallet_signer import WalletSigner

logger = logging.getLogger(__name__)


@dataclass
class ProtocolParams:
    registration_gas_nano: int = 20_000_000
    deploy_value_nano: int = 700_000_000
    poll_interval: float = 2.0
    acceptance_timeout: float = 60.0
    visibility_timeout: float = 30.0
    confirmation_interval: float = 5.0
    confirmation_timeout: float = 60.0
    payment_tolerance: float = 0.99
    payment_scan_limit: int = 100
    purchase_keyword: str = "Subscribe"
    deploy_comment: str = "deploy"
    registration_ttl_sec: int = 3600

    @classmethod
    def from_settings(cls, s: Settings) -> "ProtocolParams":
        return cls(
            registration_gas_nano=to_nano(s.REGISTRATION_GAS_TON),
            deploy_value_nano=to_nano(s.DEPLOY_VALUE_TON),
            poll_interval=s.POLL_INTERVAL_SEC,
            acceptance_timeout=s.ACCEPTANCE_TIMEOUT_SEC,
            visibility_timeout=s.VISIBILITY_TIMEOUT_SEC,
            confirmation_interval=s.CONFIRMATION_INTERVAL_SEC,
            confirmation_timeout=s.CONFIRMATION_TIMEOUT_SEC,
            payment_tolerance=s.PAYMENT_TOLERANCE,
            payment_scan_limit=s.PAYMENT_SCAN_LIMIT,
            purchase_keyword=s.PURCHASE_KEYWORD,
            deploy_comment=s.DEPLOY_COMMENT,
            registration_ttl_sec=s.REGISTRATION_TTL_SEC,
        )


@dataclass
class GateContext:
    """
    Long-lived collaborators shared by the use cases.

    Built once per process (see main.lifespan). The signer is the only
    mutable shared resource: every registration must go through this one
    instance so seqno reads are serialized.
    """

    network: TonNetwork
    chain: TonChainGateway
    factory: SubscriptionFactoryAdapter
    outcomes: DeploymentOutcomeRepository
    params: ProtocolParams = field(default_factory=ProtocolParams)
    signer: Optional[WalletSigner] = None
    clock: Clock = field(default_factory=MonotonicClock)

    def require_signer(self) -> WalletSigner:
        if self.signer is None:
            raise RuntimeError("DEPLOYER_MNEMONIC not configured - needed for registration")
        return self.signer

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GateContext":
        s = settings or get_settings()
        network = TonNetwork(s.TON_NETWORK)
        params = ProtocolParams.from_settings(s)
        clock = MonotonicClock()

        if not s.FACTORY_CONTRACT_ADDRESS:
            raise RuntimeError("FACTORY_CONTRACT_ADDRESS not configured")
        ensure_network(s.FACTORY_CONTRACT_ADDRESS, network)

        chain = ToncenterClient.from_settings()
        factory = SubscriptionFactoryAdapter(
            chain,
            s.FACTORY_CONTRACT_ADDRESS,
            child_address_getter=s.CHILD_ADDRESS_GETTER,
            set_deployer_opcode=s.SET_DEPLOYER_OPCODE,
        )

        signer = None
        if s.DEPLOYER_MNEMONIC:
            signer = WalletSigner.from_mnemonic(
                chain,
                s.DEPLOYER_MNEMONIC,
                network=network,
                clock=clock,
                acceptance_timeout=params.acceptance_timeout,
                poll_interval=params.poll_interval,
            )
            logger.info("Deployer wallet: %s", signer.friendly_address)
        else:
            logger.warning("DEPLOYER_MNEMONIC not set: registration endpoints are disabled")

        if s.OUTCOME_STORE == "mongo":
            from adapters.external.database.deployment_outcome_repository_mongodb import (
                DeploymentOutcomeRepositoryMongoDB,
            )

            outcomes: DeploymentOutcomeRepository = DeploymentOutcomeRepositoryMongoDB(ttl_sec=s.OUTCOME_TTL_SEC)
        else:
            outcomes = DeploymentOutcomeRepositoryMemory(ttl_sec=s.OUTCOME_TTL_SEC)

        return cls(
            network=network,
            chain=chain,
            factory=factory,
            outcomes=outcomes,
            params=params,
            signer=signer,
            clock=clock,
        )
