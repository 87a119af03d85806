from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.aggregates import provider_distribution, summary_stats, time_series, top_markers
from core.charts import provider_distribution_chart, records_per_month_chart, to_vega_spec, top_markers_chart
from core.data import MAX_PARSE_WARNINGS, TOP_MARKERS_DEFAULT
from core.filters import FilterSpec


def compute_overview(filters: FilterSpec, ctx: Dict[str, Any], *, top_n: int = TOP_MARKERS_DEFAULT) -> Dict[str, Any]:
    records: pd.DataFrame = ctx.get("records", pd.DataFrame())
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    parse_errors = ctx.get("parse_errors", []) or []

    markers = top_markers(filtered, top_n)
    months = time_series(filtered)
    providers = provider_distribution(filtered)

    charts: Dict[str, Any] = {}
    if markers:
        charts["top_markers"] = to_vega_spec(top_markers_chart(markers))
    if months:
        charts["records_per_month"] = to_vega_spec(records_per_month_chart(months))
    if providers:
        charts["provider_distribution"] = to_vega_spec(provider_distribution_chart(providers))

    return {
        "filters": asdict(filters),
        "source": ctx.get("source_name"),
        "counts": {"filtered": int(len(filtered)), "total": int(len(records))},
        "summary": summary_stats(filtered),
        "summary_all": summary_stats(records),
        "top_markers": markers,
        "time_series": months,
        "provider_distribution": providers,
        "charts": charts,
        "parse_warnings": [e.as_dict() for e in parse_errors[:MAX_PARSE_WARNINGS]],
        "parse_warning_count": len(parse_errors),
        "options": {"providers": ctx.get("provider_options", []), "years": ctx.get("year_options", [])},
    }
