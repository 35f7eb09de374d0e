"""Cross-representation equality and wire-value coercion.

The same logical value reaches the engines in several shapes: a raw
scalar, a Pointer envelope, a Date envelope, or a one-element list.
Every comparison in the query and update engines goes through
``values_equal`` so all of them agree on what "equal" means.
"""

from datetime import datetime, timezone
from typing import Any

POINTER_TYPE = "Pointer"
DATE_TYPE = "Date"
OBJECT_TYPE = "Object"


def is_operation(value: Any) -> bool:
    """True for ``{"__op": ...}`` update-operation tags."""
    return isinstance(value, dict) and "__op" in value


def is_pointer(value: Any) -> bool:
    return isinstance(value, dict) and value.get("__type") == POINTER_TYPE


def is_date(value: Any) -> bool:
    return isinstance(value, dict) and value.get("__type") == DATE_TYPE


def parse_iso(iso: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware UTC datetime."""
    if iso.endswith("Z"):
        iso = iso[:-1] + "+00:00"
    parsed = datetime.fromisoformat(iso)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def decode_query_value(value: Any) -> Any:
    """Unwrap a Date envelope into a datetime; anything else is returned unchanged."""
    if is_date(value):
        return parse_iso(value["iso"])
    return value


def values_equal(a: Any, b: Any) -> bool:
    """Representation-independent equality.

    Asymmetric on purpose: when ``a`` is a list, the result is whether
    any of its elements equals ``b``.
    """
    if a is None or b is None:
        return a is None and b is None

    if a == b:
        return True

    # Both pointer-like (Pointer envelope, fetched Object or stored document)
    if (
        isinstance(a, dict)
        and isinstance(b, dict)
        and a.get("objectId") is not None
        and a.get("objectId") == b.get("objectId")
    ):
        return True

    if isinstance(a, list):
        return any(values_equal(item, b) for item in a)

    if is_date(a) and is_date(b):
        return decode_query_value(a) == decode_query_value(b)

    return False


def to_wire_date(value: datetime) -> str:
    """Serialize a datetime the way the remote API does: ``2024-01-31T12:00:00.000Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def serialize_dates(value: Any) -> Any:
    """Recursively replace datetime values with their wire form."""
    if isinstance(value, datetime):
        return to_wire_date(value)
    if isinstance(value, dict):
        return {key: serialize_dates(item) for key, item in value.items()}
    if isinstance(value, list):
        return [serialize_dates(item) for item in value]
    return value
