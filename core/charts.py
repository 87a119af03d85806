from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def top_markers_chart(rows: List[Dict[str, Any]]) -> alt.Chart:
    df = pd.DataFrame(rows)
    return (
        alt.Chart(df)
        .mark_bar(cornerRadiusEnd=3)
        .encode(
            x=alt.X("count:Q", title="Records", axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
            y=alt.Y("marker:N", title=None, sort="-x"),
            tooltip=["marker", alt.Tooltip("count:Q", format=",")],
        )
        .properties(height=max(120, 24 * len(df)))
    )


def records_per_month_chart(rows: List[Dict[str, Any]]) -> alt.Chart:
    df = pd.DataFrame(rows)
    hover = alt.selection_point(fields=["month"], on="mouseover", empty="all")
    return (
        alt.Chart(df)
        .mark_line(point={"filled": True, "size": 60})
        .encode(
            x=alt.X("month:O", title="Month", axis=alt.Axis(grid=False, labelAngle=-45)),
            y=alt.Y("count:Q", title="Records", axis=alt.Axis(format="d", gridDash=[4, 4], domain=False, ticks=False)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.4)),
            tooltip=["month", alt.Tooltip("count:Q", format=",")],
        )
        .add_params(hover)
        .properties(height=260)
    )


def provider_distribution_chart(rows: List[Dict[str, Any]]) -> alt.Chart:
    df = pd.DataFrame(rows)
    return (
        alt.Chart(df)
        .mark_arc(innerRadius=50)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color("provider:N", title="Provider", sort=None),
            tooltip=["provider", alt.Tooltip("count:Q", format=",")],
        )
        .properties(height=260)
    )
