from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Union

NANO_PER_TON = 10**9

Amount = Union[int, float, str, Decimal]


def _norm(a: str | None) -> str:
    return (a or "").strip()


def _norm_lower(a: str | None) -> str:
    return _norm(a).lower()


def to_nano(amount: Amount) -> int:
    """
    TON -> nanoton. Floats go through str() so 0.7 stays 700_000_000.
    """
    try:
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid TON amount: {amount!r}") from exc
    if value < 0:
        raise ValueError("TON amount must not be negative")
    return int((value * NANO_PER_TON).to_integral_value(rounding=ROUND_DOWN))


def from_nano(nanotons: int | str) -> Decimal:
    return Decimal(int(nanotons)) / Decimal(NANO_PER_TON)


def _require_channel_id(channel_id: int) -> int:
    v = int(channel_id)
    if not -(2**63) <= v <= 2**63 - 1:
        raise ValueError("channel_id must fit in int64")
    return v


def _require_positive_price(price_ton: Amount) -> int:
    nanos = to_nano(price_ton)
    if nanos <= 0:
        raise ValueError("price must be greater than zero")
    return nanos
