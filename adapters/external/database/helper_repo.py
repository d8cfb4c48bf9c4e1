from typing import Any

_MIN_INT64 = -(2**63)
_MAX_INT64 = 2**63 - 1


def sanitize_for_mongo(value: Any) -> Any:
    """
    Recursively sanitize values so they are acceptable by MongoDB/BSON.

    - ints outside int64 (large nanoton amounts, TVM uint256) become strings
    - dicts, lists and tuples are walked recursively
    """
    if isinstance(value, bool):
        return value

    if isinstance(value, int):
        if _MIN_INT64 <= value <= _MAX_INT64:
            return value
        return str(value)

    if isinstance(value, dict):
        return {k: sanitize_for_mongo(v) for k, v in value.items()}

    if isinstance(value, list):
        return [sanitize_for_mongo(v) for v in value]

    if isinstance(value, tuple):
        return tuple(sanitize_for_mongo(v) for v in value)

    return value
