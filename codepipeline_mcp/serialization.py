"""serialization.py — Timestamp and value normalisation for tool payloads.

Timestamps go out as ISO-8601 UTC with millisecond precision and a ``Z``
suffix, and the same representation is accepted on input.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, Optional, Union


def _now() -> dt.datetime:
    """Current UTC time as an aware datetime."""
    return dt.datetime.now(dt.timezone.utc)


def _iso(value: Union[dt.datetime, str, None]) -> str:
    """Format a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``; ``''`` for None."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    text = value.astimezone(dt.timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _parse_iso(text: str) -> dt.datetime:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    raw = str(text or "").strip()
    if raw.endswith("Z") or raw.endswith("z"):
        raw = raw[:-1] + "+00:00"
    parsed = dt.datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


def _as_utc(value: Union[dt.datetime, str]) -> dt.datetime:
    if isinstance(value, str):
        return _parse_iso(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def _number(value: Any) -> Any:
    """Collapse integral floats/Decimals to int so counts render as ``3`` not ``3.0``."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, float) and value == int(value):
        return int(value)
    return value


def _compact(mapping: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None (absent optional substructures)."""
    return {k: v for k, v in mapping.items() if v is not None}


def _optional_iso(value: Optional[Union[dt.datetime, str]]) -> Optional[str]:
    return _iso(value) if value is not None else None
