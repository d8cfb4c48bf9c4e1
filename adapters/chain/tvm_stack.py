"""
TVM stack codec for the toncenter v2 `runGetMethod` API.

Toncenter answers with two different shapes depending on nesting depth:

top level (list of pairs):
    ["num", "0x2a"]
    ["cell", {"bytes": "<b64 boc>", "object": {...}}]
    ["slice", {"bytes": "<b64 boc>"}]
    ["tuple", {"@type": "tvm.tuple", "elements": [<typed entry>, ...]}]
    ["list",  {"@type": "tvm.list",  "elements": [<typed entry>, ...]}]
    ["null", null]

inside tuples (typed objects):
    {"@type": "tvm.stackEntryNumber", "number": {"number": "42"}}
    {"@type": "tvm.stackEntryCell",   "cell":   {"bytes": "..."}}
    {"@type": "tvm.stackEntrySlice",  "slice":  {"bytes": "..."}}
    {"@type": "tvm.stackEntryTuple",  "tuple":  {"elements": [...]}}
    {"@type": "tvm.stackEntryList",   "list":   {"elements": [...]}}

An Optional struct returned by a Tact getter arrives either as null or as a
tuple of its fields; some API versions send an empty tuple instead of null,
so an empty tuple also decodes to None.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from tonsdk.boc import Cell, Slice, begin_cell
from tonsdk.utils import Address


@dataclass(frozen=True)
class TvmSlice:
    """
    Cell or slice returned by a get-method, kept as raw BOC bytes.
    """

    boc: bytes

    @classmethod
    def from_b64(cls, b64: str) -> "TvmSlice":
        return cls(boc=base64.b64decode(b64))

    @classmethod
    def from_address(cls, address: Address) -> "TvmSlice":
        cell = begin_cell().store_address(address).end_cell()
        return cls(boc=bytes(cell.to_boc(False)))

    def to_b64(self) -> str:
        return base64.b64encode(self.boc).decode()

    def cell(self) -> Cell:
        return Cell.one_from_boc(self.boc)

    def begin_parse(self) -> Slice:
        return self.cell().begin_parse()

    def read_address(self) -> Optional[Address]:
        """
        Decode a MsgAddress stored at the start of the slice. addr_none -> None.
        """
        return self.begin_parse().read_msg_addr()


def read_snake_string(body: Slice) -> str:
    """
    Remaining bytes of the slice plus its first-reference chain, as UTF-8.
    """
    data = bytearray()
    while True:
        data += body.read_bytes(len(body) // 8)
        if body.ref_offset >= len(body.refs):
            break
        body = body.read_ref().begin_parse()
    return data.decode("utf-8")


def _parse_number(value: Any) -> int:
    if isinstance(value, int):
        return value
    text = str(value).strip()
    negative = text.startswith("-")
    if negative:
        text = text[1:]
    n = int(text, 16) if text.lower().startswith("0x") else int(text)
    return -n if negative else n


def _decode_elements(elements: Sequence[Any]) -> Optional[List[Any]]:
    decoded = [decode_typed_entry(e) for e in (elements or [])]
    return decoded or None


def decode_typed_entry(entry: dict) -> Any:
    kind = str(entry.get("@type", ""))
    if kind == "tvm.stackEntryNumber":
        return _parse_number((entry.get("number") or {}).get("number"))
    if kind == "tvm.stackEntryCell":
        return TvmSlice.from_b64((entry.get("cell") or {}).get("bytes", ""))
    if kind == "tvm.stackEntrySlice":
        return TvmSlice.from_b64((entry.get("slice") or {}).get("bytes", ""))
    if kind == "tvm.stackEntryTuple":
        return _decode_elements((entry.get("tuple") or {}).get("elements", []))
    if kind == "tvm.stackEntryList":
        return _decode_elements((entry.get("list") or {}).get("elements", []))
    if kind in ("tvm.stackEntryNull", ""):
        return None
    raise ValueError(f"Unsupported TVM stack entry type: {kind}")


def decode_entry(entry: Sequence[Any]) -> Any:
    if not isinstance(entry, (list, tuple)) or not entry:
        raise ValueError(f"Malformed stack entry: {entry!r}")

    kind = str(entry[0])
    payload = entry[1] if len(entry) > 1 else None

    if kind == "num":
        return _parse_number(payload)
    if kind in ("cell", "slice"):
        b64 = payload.get("bytes") if isinstance(payload, dict) else payload
        return TvmSlice.from_b64(b64 or "")
    if kind in ("tuple", "list"):
        return _decode_elements((payload or {}).get("elements", []))
    if kind == "null":
        return None
    raise ValueError(f"Unsupported TVM stack entry: {kind}")


def decode_stack(entries: Sequence[Any]) -> List[Any]:
    return [decode_entry(e) for e in (entries or [])]


def encode_arg(value: Any) -> List[Any]:
    """
    Python value -> toncenter v2 get-method argument.
    """
    if isinstance(value, bool):
        return ["num", int(value)]
    if isinstance(value, int):
        return ["num", value]
    if isinstance(value, Address):
        return ["tvm.Slice", TvmSlice.from_address(value).to_b64()]
    if isinstance(value, TvmSlice):
        return ["tvm.Slice", value.to_b64()]
    raise TypeError(f"Cannot encode get-method argument of type {type(value).__name__}")
