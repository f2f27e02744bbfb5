# perfmon/utils/parsers.py
"""
Parsing and normalization helpers for untrusted request values.

Dashboards send partial and sometimes messy input (empty strings, "all",
half-typed dates). These helpers turn such values into typed ones, or None
when a value cannot be understood, so filters degrade to "no constraint"
instead of failing the whole request.

Timestamps are normalized to naive UTC datetimes, matching how the store
keeps them.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional, Union

from dateutil import parser as dtparser

# Values that mean "no constraint" for any filter field.
WILDCARD_VALUES = {"", "all"}

STATUS_KEYWORDS = {"success", "error"}

# Range of status codes a call record can carry.
STATUS_CODE_MIN = 100
STATUS_CODE_MAX = 599

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    """Current instant as a naive UTC datetime (seconds precision)."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def to_utc_naive(dt: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    - If tz-aware -> convert to UTC and drop tzinfo.
    - If tz-naive -> treat as UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO8601 timestamp and normalize to naive UTC (seconds precision).

    Raises:
        ValueError: if the value is not a recognizable timestamp.
    """
    if isinstance(value, datetime):
        return to_utc_naive(value).replace(microsecond=0)
    try:
        dt = dtparser.isoparse(str(value).strip())
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Unrecognized timestamp: {value!r}") from exc
    return to_utc_naive(dt).replace(microsecond=0)


def parse_filter_timestamp(
    value: Optional[Union[str, datetime]],
    *,
    end_of_day: bool = False,
) -> Optional[datetime]:
    """
    Lenient timestamp parsing for filter bounds.

    Returns None for empty or unparseable input. A date-only upper bound
    (``2024-06-18``) covers that whole day when `end_of_day` is set.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc_naive(value)

    raw = value.strip()
    if not raw:
        return None
    try:
        dt = parse_timestamp(raw)
    except ValueError:
        return None

    if end_of_day and _DATE_ONLY.match(raw):
        dt = dt.replace(hour=23, minute=59, second=59, microsecond=999999)
    return dt


def isoformat_z(dt: datetime) -> str:
    """Convert naive UTC datetime to ISO8601 with trailing 'Z'."""
    return to_utc_naive(dt).replace(microsecond=0).isoformat() + "Z"


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip a free-text filter value; wildcard or blank input becomes None."""
    if value is None:
        return None
    text = value.strip()
    if text.lower() in WILDCARD_VALUES:
        return None
    return text


def parse_status_class(value: Optional[Union[str, int]]) -> Optional[Union[str, int]]:
    """
    Normalize a status filter.

    Returns "success" / "error" for band keywords, an int for a literal code
    in [STATUS_CODE_MIN, STATUS_CODE_MAX], or None for wildcard, out-of-range
    and unrecognized input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if STATUS_CODE_MIN <= value <= STATUS_CODE_MAX else None

    raw = value.strip().lower()
    if raw in WILDCARD_VALUES:
        return None
    if raw in STATUS_KEYWORDS:
        return raw
    try:
        code = int(raw)
    except ValueError:
        return None
    return code if STATUS_CODE_MIN <= code <= STATUS_CODE_MAX else None
