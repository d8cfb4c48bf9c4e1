from __future__ import annotations

from enum import StrEnum


class TonNetwork(StrEnum):
    """
    Network selector. Drives the test-only flag of every user-friendly address
    and the TON Connect chain id.
    """

    MAINNET = "mainnet"
    TESTNET = "testnet"

    @property
    def is_testnet(self) -> bool:
        return self is TonNetwork.TESTNET

    @property
    def chain_id(self) -> str:
        return "-3" if self.is_testnet else "-239"


class RegistrationStatus(StrEnum):
    """
    Result of RegisterDeployment + two-phase confirmation.

    - CONFIRMED: accepted and visible through getRegisteredDeployment.
    - ACCEPTANCE_TIMEOUT: wallet seqno never advanced. Safe to retry from scratch.
    - VISIBILITY_TIMEOUT: accepted, but the factory getter never showed the record.
      Re-poll, do not resubmit.
    """

    CONFIRMED = "CONFIRMED"
    ACCEPTANCE_TIMEOUT = "ACCEPTANCE_TIMEOUT"
    VISIBILITY_TIMEOUT = "VISIBILITY_TIMEOUT"


class DeploymentState(StrEnum):
    PENDING = "PENDING"
    AWAITING_USER_PAYMENT = "AWAITING_USER_PAYMENT"
    DEPLOYING = "DEPLOYING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentState.ACTIVE, DeploymentState.FAILED)


class PaymentStatus(StrEnum):
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    UNDERPAID_REJECTED = "UNDERPAID_REJECTED"


class FactoryRole(StrEnum):
    """
    Authorization tag evaluated by the factory for RegisterDeployment senders.
    """

    OWNER = "OWNER"
    DEPLOYER = "DEPLOYER"
    NONE = "NONE"

    @property
    def can_register(self) -> bool:
        return self in (FactoryRole.OWNER, FactoryRole.DEPLOYER)
