# core/services/exceptions.py
from __future__ import annotations

from typing import Any, Optional


class MalformedAddressNetworkError(ValueError):
    """
    An address carries a network flag that does not match the active network.

    This is a programming/configuration error: wallets silently decline
    transactions whose target was encoded for the other network, so it is
    never coerced.
    """

    def __init__(self, *, address: str, expected_network: str, msg: Optional[str] = None):
        self.address = address
        self.expected_network = expected_network
        super().__init__(
            msg or f"Address {address} is not encoded for {expected_network}"
        )


class ChainClientError(RuntimeError):
    """
    The TON HTTP API answered with an error or an unexpected payload.
    """

    def __init__(self, *, method: str, status_code: Optional[int] = None, detail: Any = None):
        self.method = method
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{method} failed (status={status_code}): {detail}")


class BroadcastError(RuntimeError):
    """
    Signing or broadcasting an external message failed.

    Never retried internally: a retry would reuse a seqno read before the
    failure and could collide with a transfer the network did accept.
    """

    def __init__(self, *, wallet_address: str, seqno: int, cause: BaseException):
        self.wallet_address = wallet_address
        self.seqno = seqno
        self.cause = cause
        super().__init__(f"Broadcast from {wallet_address} with seqno={seqno} failed: {cause}")


class UnauthorizedDeployerError(PermissionError):
    """
    The signer wallet is neither the factory owner nor its deployer, so the
    factory would reject RegisterDeployment.
    """

    def __init__(self, *, wallet_address: str, factory_address: str):
        self.wallet_address = wallet_address
        self.factory_address = factory_address
        super().__init__(
            f"Wallet {wallet_address} is not owner/deployer of factory {factory_address}"
        )


class GetterDecodeError(ValueError):
    """
    A get-method returned a stack shape this client does not understand.
    """

    def __init__(self, *, method: str, stack: Any):
        self.method = method
        self.stack = stack
        super().__init__(f"Cannot decode {method} result: {stack!r}")
