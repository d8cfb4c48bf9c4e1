import os
from dotenv import load_dotenv
from dataclasses import dataclass
from functools import lru_cache

load_dotenv()


TONCENTER_DEFAULT_URLS = {
    "mainnet": "https://toncenter.com/api/v2",
    "testnet": "https://testnet.toncenter.com/api/v2",
}


def _parse_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    return float(value.strip())


def _parse_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value.strip(), 0)


def _parse_network(value: str | None) -> str:
    network = (value or "testnet").strip().lower()
    if network not in TONCENTER_DEFAULT_URLS:
        raise ValueError(f"TON_NETWORK must be 'mainnet' or 'testnet', got {value!r}")
    return network


@dataclass
class Settings:
    # chain
    TON_NETWORK: str
    TONCENTER_URL: str
    TONCENTER_API_KEY: str

    # signing: the backend only ever holds the restricted deployer key
    DEPLOYER_MNEMONIC: str

    # on-chain factory
    FACTORY_CONTRACT_ADDRESS: str

    # short-lived outcome store
    MONGO_URI: str
    MONGO_DB: str
    OUTCOME_STORE: str = "memory"
    OUTCOME_TTL_SEC: int = 24 * 60 * 60

    # protocol constants
    REGISTRATION_GAS_TON: float = 0.02
    DEPLOY_VALUE_TON: float = 0.7
    POLL_INTERVAL_SEC: float = 2.0
    ACCEPTANCE_TIMEOUT_SEC: float = 60.0
    VISIBILITY_TIMEOUT_SEC: float = 30.0
    CONFIRMATION_INTERVAL_SEC: float = 5.0
    CONFIRMATION_TIMEOUT_SEC: float = 60.0
    PAYMENT_TOLERANCE: float = 0.99
    PAYMENT_SCAN_LIMIT: int = 100
    PURCHASE_KEYWORD: str = "Subscribe"
    DEPLOY_COMMENT: str = "deploy"
    REGISTRATION_TTL_SEC: int = 60 * 60
    CHILD_ADDRESS_GETTER: str = "getSubscriptionAddress"
    SET_DEPLOYER_OPCODE: int = 0x4D1E4E6E

    # generic
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    @property
    def is_testnet(self) -> bool:
        return self.TON_NETWORK == "testnet"


@lru_cache()
def get_settings() -> Settings:
    network = _parse_network(os.getenv("TON_NETWORK"))

    return Settings(
        # Chain
        TON_NETWORK=network,
        TONCENTER_URL=(os.getenv("TONCENTER_URL") or TONCENTER_DEFAULT_URLS[network]).rstrip("/"),
        TONCENTER_API_KEY=os.getenv("TONCENTER_API_KEY", ""),

        # Signing / factory
        DEPLOYER_MNEMONIC=os.getenv("DEPLOYER_MNEMONIC", ""),
        FACTORY_CONTRACT_ADDRESS=os.getenv("FACTORY_CONTRACT_ADDRESS", ""),

        # Mongo
        MONGO_URI=os.getenv("MONGO_URI", "mongodb://localhost:27017/channel_gate"),
        MONGO_DB=os.getenv("MONGO_DB", "channel_gate"),
        OUTCOME_STORE=os.getenv("OUTCOME_STORE", "memory").strip().lower(),
        OUTCOME_TTL_SEC=_parse_int(os.getenv("OUTCOME_TTL_SEC"), 24 * 60 * 60),

        # Protocol
        REGISTRATION_GAS_TON=_parse_float(os.getenv("REGISTRATION_GAS_TON"), 0.02),
        DEPLOY_VALUE_TON=_parse_float(os.getenv("DEPLOY_VALUE_TON"), 0.7),
        POLL_INTERVAL_SEC=_parse_float(os.getenv("POLL_INTERVAL_SEC"), 2.0),
        ACCEPTANCE_TIMEOUT_SEC=_parse_float(os.getenv("ACCEPTANCE_TIMEOUT_SEC"), 60.0),
        VISIBILITY_TIMEOUT_SEC=_parse_float(os.getenv("VISIBILITY_TIMEOUT_SEC"), 30.0),
        CONFIRMATION_INTERVAL_SEC=_parse_float(os.getenv("CONFIRMATION_INTERVAL_SEC"), 5.0),
        CONFIRMATION_TIMEOUT_SEC=_parse_float(os.getenv("CONFIRMATION_TIMEOUT_SEC"), 60.0),
        PAYMENT_TOLERANCE=_parse_float(os.getenv("PAYMENT_TOLERANCE"), 0.99),
        PAYMENT_SCAN_LIMIT=_parse_int(os.getenv("PAYMENT_SCAN_LIMIT"), 100),
        PURCHASE_KEYWORD=os.getenv("PURCHASE_KEYWORD", "Subscribe"),
        DEPLOY_COMMENT=os.getenv("DEPLOY_COMMENT", "deploy"),
        REGISTRATION_TTL_SEC=_parse_int(os.getenv("REGISTRATION_TTL_SEC"), 60 * 60),
        CHILD_ADDRESS_GETTER=os.getenv("CHILD_ADDRESS_GETTER", "getSubscriptionAddress"),
        SET_DEPLOYER_OPCODE=_parse_int(os.getenv("SET_DEPLOYER_OPCODE"), 0x4D1E4E6E),

        ENV=os.getenv("ENV", "dev"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )
