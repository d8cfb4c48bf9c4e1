"""
Network-aware TON address formatting.

A user-friendly TON address carries two flags next to workchain and hash:
bounceable and test-only. Wallet apps decline any transaction whose target
was encoded for the other network, so every address handed to a signing
client goes through `format_for_network`, and every address coming from
configuration or users goes through `ensure_network`.

Prefixes (url-safe):
    mainnet bounceable      EQ...
    mainnet non-bounceable  UQ...
    testnet bounceable      kQ...
    testnet non-bounceable  0Q...
"""

from __future__ import annotations

from typing import Union

from tonsdk.utils import Address

from core.domain.enums.deployment_enums import TonNetwork
from core.services.exceptions import MalformedAddressNetworkError
from core.services.normalize import _norm

AddressLike = Union[str, Address]

_EXPLORERS = {
    TonNetwork.MAINNET: "https://tonviewer.com",
    TonNetwork.TESTNET: "https://testnet.tonviewer.com",
}


def parse_address(value: AddressLike) -> Address:
    if isinstance(value, Address):
        return Address(value)
    text = _norm(value)
    if not text:
        raise ValueError("address is required")
    try:
        return Address(text)
    except Exception as exc:
        raise ValueError(f"Invalid TON address: {value!r}") from exc


def is_user_friendly(value: str) -> bool:
    return ":" not in _norm(value)


def raw_form(value: AddressLike) -> str:
    """
    Network-neutral "wc:hex" form, usable as a map key.
    """
    return parse_address(value).to_string(False)


def same_address(a: AddressLike, b: AddressLike) -> bool:
    return raw_form(a) == raw_form(b)


def format_for_network(value: AddressLike, network: TonNetwork, *, bounceable: bool = True) -> str:
    """
    Url-safe user-friendly encoding with the test-only flag set for `network`.
    """
    addr = parse_address(value)
    return addr.to_string(True, True, bool(bounceable), network.is_testnet)


def ensure_network(value: AddressLike, network: TonNetwork) -> Address:
    """
    Parse `value` and reject user-friendly encodings built for the other network.
    Raw "wc:hex" addresses carry no network flag and are accepted as-is.
    """
    addr = parse_address(value)
    if isinstance(value, str) and not is_user_friendly(value):
        return addr
    if bool(addr.is_test_only) != network.is_testnet:
        raise MalformedAddressNetworkError(
            address=_norm(value) if isinstance(value, str) else addr.to_string(True, True, True, addr.is_test_only),
            expected_network=network.value,
        )
    return addr


def expected_prefix(network: TonNetwork, *, bounceable: bool = True) -> str:
    if network.is_testnet:
        return "kQ" if bounceable else "0Q"
    return "EQ" if bounceable else "UQ"


def explorer_address_url(value: AddressLike, network: TonNetwork) -> str:
    return f"{_EXPLORERS[network]}/{format_for_network(value, network)}"


def explorer_tx_url(tx_hash: str, network: TonNetwork) -> str:
    return f"{_EXPLORERS[network]}/transaction/{_norm(tx_hash)}"
