"""Utility functions for the fee ledger.

This module provides helpers for turning loosely typed input (JSON numbers,
ISO date strings) into ``Decimal`` and ``datetime.date`` values. Every helper
takes the name of the record being parsed so that failures can point at the
exact input that was rejected.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, getcontext
from typing import Any, Optional

from .errors import MalformedRecord

getcontext().prec = 28  # increase decimal precision to avoid rounding errors


def parse_date(value: Any, record: str) -> date:
    """Parse an ISO date (``YYYY-MM-DD``) or ISO timestamp into a ``date``.

    ``date`` and ``datetime`` instances are accepted as-is (a ``datetime`` is
    truncated to its date).

    Raises
    ------
    MalformedRecord
        If the value is not a valid ISO date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise MalformedRecord(record, f"invalid date: {value!r}")
    text = value.strip()
    try:
        if len(text) > 10:
            # Timestamps such as 2024-08-15T10:30:00Z; only the day matters.
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError as exc:
        raise MalformedRecord(record, f"invalid date: {value!r}") from exc


def parse_optional_date(value: Any, record: str) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_date(value, record)


def decimal_from_value(value: Any, record: str) -> Decimal:
    """Convert a monetary input value into a non-negative finite ``Decimal``.

    Floats go through ``str`` first so that ``0.1`` stays ``0.1`` rather than
    its binary expansion. Strings may contain thousands separators.
    """
    if isinstance(value, bool):
        raise MalformedRecord(record, f"invalid amount: {value!r}")
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float)):
            amount = Decimal(str(value))
        elif isinstance(value, str):
            amount = Decimal(value.replace(",", "").strip())
        else:
            raise MalformedRecord(record, f"invalid amount: {value!r}")
    except InvalidOperation as exc:
        raise MalformedRecord(record, f"invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise MalformedRecord(record, f"amount must be finite, got {value!r}")
    if amount < 0:
        raise MalformedRecord(record, f"amount must not be negative, got {value!r}")
    return amount


def sum_amounts(amounts) -> Decimal:
    return sum(amounts, Decimal("0"))
