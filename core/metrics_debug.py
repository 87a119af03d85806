from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.aggregates import text_column
from core.dates import UNKNOWN, year_month_series, year_series
from core.headers import CANONICAL_FIELDS, is_canonical


def compute_debug(filters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: pd.DataFrame = ctx.get("records", pd.DataFrame())
    parse_errors = ctx.get("parse_errors", []) or []
    fields = ctx.get("fields", []) or []

    payload = {
        "filters": asdict(filters),
        "source": ctx.get("source_name"),
        "row_counts": {
            "records": int(len(records)),
            "filtered_records": int(len(ctx.get("filtered_records", pd.DataFrame()))),
            "parse_warnings": len(parse_errors),
        },
        "columns": {
            "canonical": [f for f in fields if is_canonical(f)],
            "unmapped": [f for f in fields if not is_canonical(f)],
            "missing": [f for f in CANONICAL_FIELDS if f not in fields and f != "id"],
        },
        "field_fill": {},
        "date_checks": {},
        "duplicate_ids": [],
        "parse_warnings": [e.as_dict() for e in parse_errors],
    }

    if records.empty:
        return payload

    payload["field_fill"] = {f: int((text_column(records, f) != "").sum()) for f in CANONICAL_FIELDS}

    dates = text_column(records, "date")
    present = dates != ""
    payload["date_checks"] = {
        "with_date": int(present.sum()),
        "unknown_year": int((year_series(dates[present]) == UNKNOWN).sum()),
        "unknown_month": int((year_month_series(dates[present]) == UNKNOWN).sum()),
    }

    ids = text_column(records, "id")
    dup = ids[ids.duplicated(keep=False)]
    if not dup.empty:
        counts = dup.value_counts().head(20).rename_axis("id").reset_index(name="count")
        payload["duplicate_ids"] = counts.to_dict(orient="records")
    return payload
