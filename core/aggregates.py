"""Derived views over a record table.

Every function here is pure: it reads the DataFrame it is given and returns
plain lists/dicts ready for JSON or charting. Missing or empty fields are
bucketed as "Unknown" (or skipped for distinct counts), never raised.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

from core.dates import UNKNOWN, parse_date, year_month_series


def text_column(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series("", index=df.index, dtype=object)
    val = df[col]
    if isinstance(val, pd.DataFrame):
        val = val.iloc[:, 0]
    return val.fillna("").astype(str)


def _counts_in_first_seen_order(values: pd.Series) -> pd.Series:
    if values.empty:
        return pd.Series(dtype="int64")
    return values.groupby(values, sort=False).size()


def top_markers(records: pd.DataFrame, n: int = 10) -> List[Dict[str, Any]]:
    markers = text_column(records, "marker").replace("", UNKNOWN)
    counts = _counts_in_first_seen_order(markers)
    # stable sort keeps first-seen order among equal counts
    ranked = counts.sort_values(ascending=False, kind="stable").head(max(0, int(n)))
    return [{"marker": str(k), "count": int(v)} for k, v in ranked.items()]


def time_series(records: pd.DataFrame) -> List[Dict[str, Any]]:
    months = year_month_series(text_column(records, "date"))
    months = months[months != UNKNOWN]
    if months.empty:
        return []
    counts = months.groupby(months).size().sort_index()
    return [{"month": str(k), "count": int(v)} for k, v in counts.items()]


def provider_distribution(records: pd.DataFrame) -> List[Dict[str, Any]]:
    providers = text_column(records, "provider").replace("", UNKNOWN)
    counts = _counts_in_first_seen_order(providers)
    return [{"provider": str(k), "count": int(v)} for k, v in counts.items()]


def latest_date(dates: pd.Series) -> str:
    """Date string with the latest parsed instant, "N/A" when there are none.

    When either side of a comparison does not parse, the later-encountered
    string is kept, so a trailing unparseable date can win.
    """
    latest: Optional[str] = None
    for current in dates:
        if not current:
            continue
        if latest is None:
            latest = current
            continue
        a, b = parse_date(latest), parse_date(current)
        if not (a is not None and b is not None and a > b):
            latest = current
    return latest if latest is not None else "N/A"


def summary_stats(records: pd.DataFrame) -> Dict[str, Any]:
    markers = text_column(records, "marker")
    providers = text_column(records, "provider")
    return {
        "total_records": int(len(records)),
        "unique_markers": int(markers[markers != ""].nunique()),
        "unique_providers": int(providers[providers != ""].nunique()),
        "latest_date": latest_date(text_column(records, "date")),
    }
