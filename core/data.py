from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from core.aggregates import text_column
from core.dates import UNKNOWN, year_series
from core.errors import EmptyResultError, FatalParseError, LargeInputWarning, LabDataError, RowParseWarning
from core.filters import ALL, FilterSpec, normalize_filters
from core.parser import parse_delimited
from core.records import empty_records, materialize
from core.sources import FileTextSource, HttpTextSource, TextSource, size_warning


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DEMO_CSV_PATH = DATA_DIR / "demo" / "consolidated_labs_demo.csv"
REFERENCE_CSV_PATH = DATA_DIR / "nutrient_reference.csv"

MAX_PARSE_WARNINGS = 5
TOP_MARKERS_DEFAULT = 10
SEARCH_FIELDS = ("marker", "value", "provider")

DISPLAY_COLUMNS = {
    "date": "Date",
    "marker": "Marker",
    "value": "Value",
    "reference_range": "Reference Range",
    "provider": "Provider",
    "lab": "Lab",
    "source_file": "Source",
}

REFERENCE_COLUMNS = ["panel", "marker", "low", "high", "clinical"]


@dataclass(frozen=True)
class RecordSet:
    records: pd.DataFrame = field(default_factory=empty_records)
    source_name: Optional[str] = None
    parse_errors: Tuple[RowParseWarning, ...] = ()
    fields: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return int(len(self.records))

    @property
    def display_errors(self) -> List[RowParseWarning]:
        return list(self.parse_errors[:MAX_PARSE_WARNINGS])


# ---------------- Ingestion ----------------
def ingest_text(text: Optional[str], source_name: str = "uploaded file", *, has_header: bool = True) -> RecordSet:
    try:
        parsed = parse_delimited(text, has_header=has_header)
    except FatalParseError:
        raise
    except Exception as exc:
        raise FatalParseError(f"Failed to parse {source_name}: {exc}") from exc

    if not parsed.rows:
        raise EmptyResultError()

    records = materialize(parsed.rows)
    if parsed.errors:
        logger.warning("%s: %d parse warnings", source_name, len(parsed.errors))
    logger.info("Loaded %d records from %s", len(records), source_name)
    return RecordSet(
        records=records,
        source_name=source_name,
        parse_errors=tuple(parsed.errors),
        fields=tuple(parsed.fields),
    )


def load_source(source: TextSource, *, confirm_large: bool = False, has_header: bool = True) -> RecordSet:
    size = source.size_bytes()
    prompt = size_warning(size)
    if prompt and not confirm_large:
        raise LargeInputWarning(prompt, size_bytes=int(size or 0))
    text = source.read_text()
    return ingest_text(text, source.name, has_header=has_header)


def demo_source() -> TextSource:
    url = os.getenv("LAB_DEMO_CSV_URL")
    if url:
        return HttpTextSource(url, name="demo CSV")
    return FileTextSource(DEMO_CSV_PATH, name="demo CSV")


# ---------------- Query ----------------
def filter_records(records: pd.DataFrame, filters: FilterSpec) -> pd.DataFrame:
    if records.empty or filters.is_unfiltered:
        return records.copy()

    mask = pd.Series(True, index=records.index)
    if filters.search_term:
        term = filters.search_term.lower()
        text_mask = pd.Series(False, index=records.index)
        for col in SEARCH_FIELDS:
            text_mask |= text_column(records, col).str.lower().str.contains(term, regex=False)
        mask &= text_mask

    if filters.provider != ALL:
        mask &= text_column(records, "provider") == filters.provider

    if filters.year != ALL:
        mask &= year_series(text_column(records, "date")) == filters.year

    return records[mask].copy()


def provider_options(records: pd.DataFrame) -> List[str]:
    providers = text_column(records, "provider")
    return [ALL] + sorted(p for p in providers.unique() if p)


def year_options(records: pd.DataFrame) -> List[str]:
    years = set(year_series(text_column(records, "date")).unique())
    numeric = sorted((y for y in years if y != UNKNOWN), key=int, reverse=True)
    return [ALL] + numeric + ([UNKNOWN] if UNKNOWN in years else [])


# ---------------- Reference table ----------------
@lru_cache(maxsize=1)
def load_reference_dim(path: Path = REFERENCE_CSV_PATH) -> pd.DataFrame:
    if not path.exists():
        logger.warning("Reference table missing at %s", path)
        return pd.DataFrame(columns=REFERENCE_COLUMNS)
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return df[[c for c in REFERENCE_COLUMNS if c in df.columns]]


def panel_options(reference: pd.DataFrame) -> List[str]:
    if reference.empty or "panel" not in reference.columns:
        return [ALL]
    return [ALL] + list(dict.fromkeys(reference["panel"].tolist()))


# ---------------- Page context ----------------
def prepare_context(filters: dict | FilterSpec | None, record_set: RecordSet) -> Dict[str, object]:
    filt = filters if isinstance(filters, FilterSpec) else normalize_filters(filters)
    records = record_set.records
    filtered = filter_records(records, filt)
    return {
        "filters": filt,
        "records": records,
        "filtered_records": filtered,
        "source_name": record_set.source_name,
        "fields": list(record_set.fields),
        "parse_errors": list(record_set.parse_errors),
        "provider_options": provider_options(records),
        "year_options": year_options(records),
    }


def describe_error(exc: LabDataError) -> Dict[str, str]:
    return {"error": str(exc), "type": type(exc).__name__}
