from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

import pandas as pd

from core.data import DISPLAY_COLUMNS
from core.filters import FilterSpec


def records_table(filtered: pd.DataFrame) -> pd.DataFrame:
    """Display columns in their fixed order, blanks shown as '-'."""
    table = pd.DataFrame(index=filtered.index)
    for col, label in DISPLAY_COLUMNS.items():
        series = filtered[col].fillna("").astype(str) if col in filtered.columns else pd.Series("", index=filtered.index)
        table[label] = series.replace("", "-")
    return table


def compute_records(filters: FilterSpec, ctx: Dict[str, Any], *, limit: Optional[int] = None) -> Dict[str, Any]:
    records: pd.DataFrame = ctx.get("records", pd.DataFrame())
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())

    rows = filtered if limit is None else filtered.head(max(0, int(limit)))
    return {
        "filters": asdict(filters),
        "count": int(len(filtered)),
        "total": int(len(records)),
        "label": f"{len(filtered)} of {len(records)} records",
        "columns": list(DISPLAY_COLUMNS),
        "rows": rows.to_dict(orient="records"),
        "truncated": limit is not None and len(filtered) > len(rows),
    }
