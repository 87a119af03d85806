from __future__ import annotations

import re
import warnings
from functools import lru_cache
from typing import Optional

import pandas as pd


UNKNOWN = "Unknown"

_YEAR_RE = re.compile(r"(\d{4})")
# dateutil resolves these against the wall clock; a lab date never means "now".
_RELATIVE_WORDS = {"now", "today", "tomorrow", "yesterday"}


@lru_cache(maxsize=8192)
def parse_date(value: Optional[str]) -> Optional[pd.Timestamp]:
    """Best-effort calendar parse. Returns a naive Timestamp or None."""
    if value is None:
        return None
    s = str(value).strip()
    if not s or s.lower() in _RELATIVE_WORDS:
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            ts = pd.to_datetime(s, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def year_of(value: Optional[str]) -> str:
    if not value:
        return UNKNOWN
    ts = parse_date(value)
    if ts is not None:
        return f"{ts.year:04d}"
    match = _YEAR_RE.search(str(value))
    return match.group(1) if match else UNKNOWN


def year_month_of(value: Optional[str]) -> str:
    if not value:
        return UNKNOWN
    ts = parse_date(value)
    if ts is None:
        return UNKNOWN
    return f"{ts.year:04d}-{ts.month:02d}"


def year_series(dates: pd.Series) -> pd.Series:
    return dates.fillna("").astype(str).map(year_of)


def year_month_series(dates: pd.Series) -> pd.Series:
    return dates.fillna("").astype(str).map(year_month_of)
