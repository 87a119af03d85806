from core.data import ingest_text, prepare_context
from core.filters import FilterSpec
from core.metrics_debug import compute_debug
from core.metrics_overview import compute_overview
from core.metrics_records import compute_records, records_table


def _ctx(text, filters=None):
    return prepare_context(filters, ingest_text(text, "labs.csv"))


def test_overview_payload_for_filtered_year(scenario_csv):
    ctx = _ctx(scenario_csv, {"year": "2024"})
    payload = compute_overview(ctx["filters"], ctx)
    assert payload["counts"] == {"filtered": 2, "total": 4}
    assert payload["summary"]["latest_date"] == "2024-07-15"
    assert payload["summary_all"]["total_records"] == 4
    assert payload["top_markers"] == [{"marker": "WBC", "count": 1}, {"marker": "RBC", "count": 1}]
    assert payload["time_series"] == [{"month": "2024-07", "count": 2}]
    assert payload["provider_distribution"] == [{"provider": "Dr. Smith", "count": 2}]
    assert set(payload["charts"]) == {"top_markers", "records_per_month", "provider_distribution"}
    assert payload["options"]["years"] == ["All", "2025", "2024"]


def test_overview_with_no_matches_has_no_charts(scenario_csv):
    ctx = _ctx(scenario_csv, {"search_term": "zzz"})
    payload = compute_overview(ctx["filters"], ctx)
    assert payload["counts"]["filtered"] == 0
    assert payload["charts"] == {}
    assert payload["summary"]["latest_date"] == "N/A"


def test_overview_caps_visible_parse_warnings():
    text = "marker,value\n" + "\n".join(f"M{i}" for i in range(7))
    ctx = _ctx(text)
    payload = compute_overview(ctx["filters"], ctx, top_n=3)
    assert len(payload["parse_warnings"]) == 5
    assert payload["parse_warning_count"] == 7
    assert len(payload["top_markers"]) == 3


def test_records_table_labels_and_placeholders():
    records = ingest_text("marker,value\nWBC,\n").records
    table = records_table(records)
    assert list(table.columns) == ["Date", "Marker", "Value", "Reference Range", "Provider", "Lab", "Source"]
    assert table.iloc[0].tolist() == ["-", "WBC", "-", "-", "-", "-", "-"]


def test_compute_records_label_and_limit(scenario_csv):
    ctx = _ctx(scenario_csv, {"provider": "Dr. Williams"})
    payload = compute_records(ctx["filters"], ctx)
    assert payload["label"] == "2 of 4 records"
    assert [r["id"] for r in payload["rows"]] == ["44", "45"]
    assert payload["truncated"] is False

    limited = compute_records(ctx["filters"], ctx, limit=1)
    assert len(limited["rows"]) == 1
    assert limited["truncated"] is True


def test_debug_reports_columns_and_duplicates():
    text = "id,Test,Result,Notes\n7,WBC,7.5,a\n7,RBC,5.2,b\n8,Glucose,,c\n"
    ctx = _ctx(text)
    payload = compute_debug(FilterSpec(), ctx)
    assert payload["columns"]["canonical"] == ["id", "marker", "value"]
    assert payload["columns"]["unmapped"] == ["notes"]
    assert "date" in payload["columns"]["missing"]
    assert payload["field_fill"]["value"] == 2
    assert payload["duplicate_ids"] == [{"id": "7", "count": 2}]
    assert payload["date_checks"] == {"with_date": 0, "unknown_year": 0, "unknown_month": 0}
