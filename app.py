import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Dict, List, Optional

from core.charts import provider_distribution_chart, records_per_month_chart, top_markers_chart
from core.data import MAX_PARSE_WARNINGS, TOP_MARKERS_DEFAULT
from core.errors import LabDataError, LargeInputWarning
from core.filters import ALL
from core.logging_config import setup_logging
from core.metrics_debug import compute_debug
from core.metrics_overview import compute_overview
from core.metrics_records import records_table
from core.metrics_reference import compute_reference
from core.session import DashboardSession
from core.sources import UploadedTextSource, size_warning

alt.data_transformers.disable_max_rows()
setup_logging()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        .arrow-low {color: #dc2626;font-weight: 700;}
        .arrow-high {color: #2563eb;font-weight: 700;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(search_term: str, provider: str, year: str) -> str:
    chips = [
        f"Search: {search_term}" if search_term else "Search: none",
        f"Provider: {provider}",
        f"Year: {year}",
    ]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def get_session() -> DashboardSession:
    if "lab_session" not in st.session_state:
        st.session_state["lab_session"] = DashboardSession()
    return st.session_state["lab_session"]


FILTER_WIDGET_KEYS = ("filter_search", "filter_provider", "filter_year")


def reset_filter_widgets():
    # the session resets its filters on load/clear; the widgets must follow
    for key in FILTER_WIDGET_KEYS:
        st.session_state.pop(key, None)


def show_error(exc: LabDataError):
    st.session_state["load_error"] = str(exc)


# ---------- UI setup ----------
st.set_page_config(page_title="Health Profile Dashboard", layout="wide")
inject_base_styles()
st.title("Health Profile Dashboard")
st.caption("Upload your health lab CSV file or load demo data to view and filter your health records.")

session = get_session()

with st.sidebar:
    st.markdown("### Data")
    uploaded = st.file_uploader("Upload CSV File", type=["csv"])
    if uploaded is not None and st.session_state.get("_loaded_upload") != (uploaded.name, uploaded.size):
        prompt = size_warning(uploaded.size)
        confirmed = True
        if prompt:
            st.warning(prompt)
            confirmed = st.button("Continue with large file")
        if confirmed:
            st.session_state.pop("load_error", None)
            try:
                with st.spinner(f"Parsing {uploaded.name}..."):
                    session.load(UploadedTextSource(uploaded.name, uploaded.getvalue()), confirm_large=True)
                st.session_state["_loaded_upload"] = (uploaded.name, uploaded.size)
                reset_filter_widgets()
            except LargeInputWarning as exc:
                st.warning(str(exc))
            except LabDataError as exc:
                show_error(exc)

    c1, c2 = st.columns(2)
    if c1.button("Load Demo Data", key="load_demo"):
        st.session_state.pop("load_error", None)
        try:
            session.load_demo()
            reset_filter_widgets()
        except LabDataError as exc:
            show_error(exc)
    if c2.button("Clear Data", key="clear_data", disabled=len(session.record_set) == 0):
        session.clear()
        reset_filter_widgets()
        st.session_state.pop("load_error", None)
        st.session_state.pop("_loaded_upload", None)

    base_ctx = session.context()
    if len(session.record_set):
        st.markdown("---")
        st.markdown("### Filters")
        search_term = st.text_input("Search", "", key="filter_search", placeholder="Search by marker, value, or provider...")
        provider = st.selectbox("Provider", options=base_ctx["provider_options"], index=0, key="filter_provider")
        year = st.selectbox("Year", options=base_ctx["year_options"], index=0, key="filter_year")
        with st.expander("Advanced settings", expanded=False):
            top_n = st.slider("Top markers", min_value=5, max_value=30, value=TOP_MARKERS_DEFAULT, step=1)
    else:
        search_term, provider, year, top_n = "", ALL, ALL, TOP_MARKERS_DEFAULT

filters = session.set_filters({"search_term": search_term, "provider": provider, "year": year})
ctx = session.context(filters)
record_set = session.record_set

if st.session_state.get("load_error"):
    st.error(f"Error: {st.session_state['load_error']}")

if record_set.parse_errors:
    lines = "\n".join(f"- Row {e.row}: {e.message}" for e in record_set.display_errors)
    more = len(record_set.parse_errors) - MAX_PARSE_WARNINGS
    st.warning(f"**Parsing Warnings:**\n{lines}" + (f"\n\n…and {more} more" if more > 0 else ""))

tab_dashboard, tab_reference, tab_debug = st.tabs(["Dashboard", "Reference Chart", "Diagnostics"])


def render_summary(summary: Dict[str, object]):
    cols = st.columns(4)
    cols[0].metric("Records", f"{summary['total_records']:,}")
    cols[1].metric("Unique Markers", f"{summary['unique_markers']:,}")
    cols[2].metric("Providers", f"{summary['unique_providers']:,}")
    cols[3].metric("Latest Date", str(summary["latest_date"]))


def render_charts(payload: Dict[str, object]):
    left, right = st.columns(2)
    with left:
        with card("Top Markers"):
            if payload["top_markers"]:
                st.altair_chart(top_markers_chart(payload["top_markers"]), use_container_width=True)
            else:
                st.info("No markers for the selected filters.")
    with right:
        with card("Provider Distribution"):
            if payload["provider_distribution"]:
                st.altair_chart(provider_distribution_chart(payload["provider_distribution"]), use_container_width=True)
            else:
                st.info("No providers for the selected filters.")
    with card("Records per Month"):
        if payload["time_series"]:
            st.altair_chart(records_per_month_chart(payload["time_series"]), use_container_width=True)
        else:
            st.info("No dated records for the selected filters.")


with tab_dashboard:
    if not len(record_set):
        st.info("No data loaded. Upload a CSV file or load demo data to get started.")
    else:
        payload = compute_overview(filters, ctx, top_n=top_n)
        st.markdown(
            f"<div class='app-top-bar'><div class='page-title'>{payload['counts']['filtered']} of {payload['counts']['total']} records</div></div>",
            unsafe_allow_html=True,
        )
        st.markdown(f"<div class='chip-row'>{format_filter_summary(filters.search_term, filters.provider, filters.year)}</div>", unsafe_allow_html=True)
        render_summary(payload["summary"])
        render_charts(payload)

        filtered: pd.DataFrame = ctx["filtered_records"]
        with card("Records"):
            if filtered.empty:
                st.info("No records match the selected filters.")
            else:
                st.dataframe(records_table(filtered), hide_index=True, use_container_width=True)
                st.download_button(
                    "Export CSV",
                    data=filtered.to_csv(index=False).encode("utf-8"),
                    file_name="lab_records.csv",
                    mime="text/csv",
                )


def render_reference_entry(entry: Dict[str, str]):
    st.markdown(f"**{entry['marker']}**")
    st.markdown(
        f"<span class='arrow-low'>↓ Low:</span> {entry['low']}<br>"
        f"<span class='arrow-high'>↑ High:</span> {entry['high']}",
        unsafe_allow_html=True,
    )
    st.caption(entry["clinical"])


with tab_reference:
    st.subheader("Blood Work Reference Chart")
    st.caption(
        "Correlation and interpretation reference for blood work markers and associated nutrients. "
        "This is for educational purposes only and should not be used for medical advice."
    )
    ref_cols = st.columns([3, 1])
    ref_search = ref_cols[0].text_input("Search markers or nutrients", "", placeholder="e.g., iron, vitamin D, hemoglobin")
    panels: List[str] = compute_reference()["panels"]
    ref_panel = ref_cols[1].selectbox("Panel Filter", options=panels, index=0)
    ref = compute_reference(ref_search, ref_panel)
    st.caption(f"Showing {ref['count']} of {ref['total']} markers")
    if not ref["groups"]:
        st.info("No markers found matching your search criteria.")
    for panel_name, entries in ref["groups"].items():
        with card(f"{panel_name} Panel"):
            for entry in entries:
                render_reference_entry(entry)
    st.markdown(f"**Disclaimer:** {ref['disclaimer']}")


def render_debug(debug: Dict[str, object], source: Optional[str]):
    st.write(f"Source: {source or 'none'}")
    st.json(debug["row_counts"])
    st.json(debug["columns"])
    if debug["field_fill"]:
        st.dataframe(pd.Series(debug["field_fill"], name="non_empty").to_frame(), use_container_width=True)
    if debug["date_checks"]:
        st.json(debug["date_checks"])
    if debug["duplicate_ids"]:
        st.warning("Some records share an id (identical rows or a hash collision).")
        st.dataframe(pd.DataFrame(debug["duplicate_ids"]), hide_index=True)
    if debug["parse_warnings"]:
        st.dataframe(pd.DataFrame(debug["parse_warnings"]), hide_index=True, use_container_width=True)


with tab_debug:
    render_debug(compute_debug(filters, ctx), record_set.source_name)
