import pandas as pd
import pytest

from core.data import filter_records, ingest_text, prepare_context, provider_options, year_options
from core.filters import ALL, FilterSpec, normalize_filters
from core.records import materialize


def _is_subsequence(sub: pd.DataFrame, full: pd.DataFrame) -> bool:
    positions = [full.index.get_loc(i) for i in sub.index]
    return positions == sorted(positions) and all(sub.loc[i].equals(full.loc[i]) for i in sub.index)


def test_default_spec_returns_everything_unchanged(scenario_records):
    out = filter_records(scenario_records, FilterSpec())
    pd.testing.assert_frame_equal(out, scenario_records)
    assert out is not scenario_records


def test_year_filter_selects_2024_rows(scenario_records):
    out = filter_records(scenario_records, FilterSpec(year="2024"))
    assert out["id"].tolist() == ["1", "2"]


def test_search_is_case_insensitive_across_marker_value_provider(scenario_records):
    assert filter_records(scenario_records, FilterSpec(search_term="vitamin"))["id"].tolist() == ["44"]
    assert filter_records(scenario_records, FilterSpec(search_term="NORMAL"))["id"].tolist() == ["45"]
    assert filter_records(scenario_records, FilterSpec(search_term="williams"))["id"].tolist() == ["44", "45"]
    # lab is not searched
    assert filter_records(scenario_records, FilterSpec(search_term="labcorp")).empty


def test_search_term_is_literal_not_regex(scenario_records):
    assert filter_records(scenario_records, FilterSpec(search_term="x10E3/uL")).shape[0] == 1
    assert filter_records(scenario_records, FilterSpec(search_term="(")).empty
    assert filter_records(scenario_records, FilterSpec(search_term="dr.")).shape[0] == 4


def test_provider_filter_is_exact(scenario_records):
    assert filter_records(scenario_records, FilterSpec(provider="Dr. Smith"))["id"].tolist() == ["1", "2"]
    assert filter_records(scenario_records, FilterSpec(provider="dr. smith")).empty


def test_predicates_are_anded(scenario_records):
    spec = FilterSpec(search_term="comma", provider="Dr. Williams", year="2025")
    assert filter_records(scenario_records, spec)["id"].tolist() == ["45"]
    assert filter_records(scenario_records, FilterSpec(search_term="comma", year="2024")).empty


@pytest.mark.parametrize(
    "spec",
    [
        FilterSpec(search_term="r"),
        FilterSpec(provider="Dr. Williams"),
        FilterSpec(year="2025"),
        FilterSpec(search_term="b", year="2024"),
        FilterSpec(year="1999"),
    ],
)
def test_output_is_order_preserving_subsequence(scenario_records, spec):
    snapshot = scenario_records.copy()
    out = filter_records(scenario_records, spec)
    assert _is_subsequence(out, scenario_records)
    pd.testing.assert_frame_equal(scenario_records, snapshot)


def test_unknown_year_bucket_is_filterable():
    records = materialize([{"marker": "A", "date": "2024-01-01"}, {"marker": "B", "date": "pending"}, {"marker": "C"}])
    assert filter_records(records, FilterSpec(year="Unknown"))["marker"].tolist() == ["B", "C"]


def test_missing_columns_never_raise():
    records = materialize([{"marker": "WBC"}])
    assert filter_records(records, FilterSpec(provider="Dr. Smith")).empty
    assert filter_records(records, FilterSpec(search_term="wbc")).shape[0] == 1


def test_normalize_filters_defaults_and_blanks():
    assert normalize_filters(None) == FilterSpec()
    spec = normalize_filters({"search_term": " iron ", "provider": "", "year": None})
    assert spec == FilterSpec(search_term=" iron ", provider=ALL, year=ALL)
    assert spec.is_unfiltered is False


def test_search_term_whitespace_is_part_of_the_match():
    records = materialize([{"marker": "Vitamin D"}, {"marker": "WBC"}, {"marker": "B12", "value": "450"}])
    spec = normalize_filters({"search_term": " "})
    assert spec.search_term == " "
    assert filter_records(records, spec)["marker"].tolist() == ["Vitamin D"]
    assert filter_records(records, normalize_filters({"search_term": " d"}))["marker"].tolist() == ["Vitamin D"]
    assert filter_records(records, normalize_filters({"search_term": " b12"})).empty


def test_options_lists(scenario_records):
    assert provider_options(scenario_records) == [ALL, "Dr. Smith", "Dr. Williams"]
    assert year_options(scenario_records) == [ALL, "2025", "2024"]


def test_year_options_put_unknown_last():
    records = ingest_text("marker,date\nA,2023-01-01\nB,unknown\nC,2025-02-02\n").records
    assert year_options(records) == [ALL, "2025", "2023", "Unknown"]


def test_prepare_context_accepts_raw_dict(scenario_csv):
    record_set = ingest_text(scenario_csv)
    ctx = prepare_context({"year": "2025"}, record_set)
    assert isinstance(ctx["filters"], FilterSpec)
    assert ctx["filtered_records"]["id"].tolist() == ["44", "45"]
    assert len(ctx["records"]) == 4
