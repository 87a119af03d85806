import pandas as pd

from core.aggregates import latest_date, provider_distribution, summary_stats, time_series, top_markers
from core.data import DEMO_CSV_PATH, ingest_text
from core.records import empty_records, materialize


def _records(*rows):
    return materialize([dict(r) for r in rows])


def test_scenario_summary(scenario_records):
    stats = summary_stats(scenario_records)
    assert stats["total_records"] == 4
    assert stats["unique_markers"] == 4
    assert stats["unique_providers"] == 2
    assert stats["latest_date"] == "2025-10-23"


def test_top_markers_ranked_with_first_seen_tie_break():
    records = _records(
        {"marker": "RBC"},
        {"marker": "WBC"},
        {"marker": "WBC"},
        {"marker": ""},
        {"marker": "RBC"},
        {"marker": "Glucose"},
        {"marker": "WBC"},
    )
    assert top_markers(records, 10) == [
        {"marker": "WBC", "count": 3},
        {"marker": "RBC", "count": 2},
        {"marker": "Unknown", "count": 1},
        {"marker": "Glucose", "count": 1},
    ]
    assert top_markers(records, 2) == [{"marker": "WBC", "count": 3}, {"marker": "RBC", "count": 2}]


def test_top_markers_on_demo_is_bounded_and_non_increasing():
    records = ingest_text(DEMO_CSV_PATH.read_text(encoding="utf-8"), "demo").records
    ranked = top_markers(records, 10)
    assert len(ranked) <= 10
    counts = [r["count"] for r in ranked]
    assert counts == sorted(counts, reverse=True)


def test_time_series_drops_unknown_and_sorts_chronologically():
    records = _records(
        {"date": "2025-01-05"},
        {"date": "2024-11-30"},
        {"date": "garbage"},
        {"date": "circa 2023"},
        {"date": ""},
        {"date": "2024-11-02"},
    )
    assert time_series(records) == [{"month": "2024-11", "count": 2}, {"month": "2025-01", "count": 1}]


def test_provider_distribution_keeps_first_seen_order():
    records = _records({"provider": "Dr. B"}, {"provider": ""}, {"provider": "Dr. A"}, {"provider": "Dr. B"})
    assert provider_distribution(records) == [
        {"provider": "Dr. B", "count": 2},
        {"provider": "Unknown", "count": 1},
        {"provider": "Dr. A", "count": 1},
    ]


def test_empty_record_set_aggregates():
    records = empty_records()
    assert top_markers(records, 10) == []
    assert time_series(records) == []
    assert provider_distribution(records) == []
    assert summary_stats(records) == {
        "total_records": 0,
        "unique_markers": 0,
        "unique_providers": 0,
        "latest_date": "N/A",
    }


def test_missing_columns_are_unknown_not_errors():
    records = _records({"lab": "LabCorp"})
    assert top_markers(records) == [{"marker": "Unknown", "count": 1}]
    assert summary_stats(records)["unique_markers"] == 0
    assert summary_stats(records)["latest_date"] == "N/A"


def test_latest_date_compares_parsed_instants():
    dates = pd.Series(["2024-07-15", "03/01/2025", "2024-12-31", ""])
    assert latest_date(dates) == "03/01/2025"


def test_latest_date_unparseable_falls_back_to_later_encountered():
    assert latest_date(pd.Series(["2025-01-01", "unknown"])) == "unknown"
    assert latest_date(pd.Series(["unknown", "2020-01-01"])) == "2020-01-01"
    assert latest_date(pd.Series(["", ""])) == "N/A"
