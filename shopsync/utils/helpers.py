"""
Helper utilities for coercing semi-structured Shopify payload values
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from dateutil import parser as date_parser

CENTS = Decimal("0.01")


def to_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Parse a money amount. Absent, null and empty values return the default."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"Not a decimal amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not a decimal amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    try:
        return amount.quantize(CENTS)
    except InvalidOperation:
        raise ValueError(f"Amount out of range: {value!r}")


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """
    Parse an integer count. Absent and null values return the default.

    Whole floats such as 3.0 are accepted; fractional floats and booleans
    are rejected rather than truncated.
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"Not an integer: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Not an integer: {value!r}")
        return int(value)
    if not isinstance(value, (int, str)):
        raise ValueError(f"Not an integer: {value!r}")
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Not an integer: {value!r}")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into a naive UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = date_parser.isoparse(value)
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"Not an ISO timestamp: {value!r}")
    else:
        raise ValueError(f"Not an ISO timestamp: {value!r}")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def external_id(value: Any) -> Optional[str]:
    """Shopify ids arrive as ints; they are stored as strings."""
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"Not an id: {value!r}")
    return str(value)


def text(value: Any) -> Optional[str]:
    """Optional free-text field. Numbers are stringified; objects are rejected."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValueError(f"Not text: {type(value).__name__}")


def round_money(amount: Any) -> float:
    """Round an aggregate amount for JSON responses"""
    return round(float(amount or 0), 2)
