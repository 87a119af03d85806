from __future__ import annotations

import re
from typing import Dict, Iterable, List, Tuple


CANONICAL_FIELDS = (
    "id",
    "marker",
    "provider",
    "date",
    "value",
    "reference_range",
    "lab",
    "source_file",
)

# Order matters: the first canonical key whose aliases contain the token wins.
HEADER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "id": ("id", "uid", "recordid"),
    "marker": ("marker", "test", "name", "testname"),
    "provider": ("provider", "doctor", "physician"),
    "date": ("date", "sampledate", "specimendate", "testdate"),
    "value": ("value", "result", "testvalue"),
    "reference_range": ("reference", "referencerange", "refrange", "range"),
    "lab": ("lab", "laboratory"),
    "source_file": ("sourcefile", "source", "file"),
}


def normalize_header(header: str) -> str:
    """Lower-case and drop everything that is not a-z or 0-9: 'Sample Date' -> 'sampledate'."""
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


_ALIAS_LOOKUP: List[Tuple[str, frozenset]] = [
    (canonical, frozenset(normalize_header(a) for a in aliases)) for canonical, aliases in HEADER_ALIASES.items()
]


def fallback_key(header: str) -> str:
    return re.sub(r"\s+", "_", str(header).strip().lower())


def map_header(header: str) -> str:
    """Map a raw column header onto its canonical key, or its fallback key when no alias matches."""
    token = normalize_header(header)
    for canonical, aliases in _ALIAS_LOOKUP:
        if token in aliases:
            return canonical
    return fallback_key(header)


def map_headers(headers: Iterable[str]) -> Tuple[List[str], Dict[str, List[str]]]:
    """Map a full header row.

    Blank header cells get their positional index as the key. Returns the keys
    in column order plus, for every key claimed by more than one source
    header, the list of those source headers (the last one wins per row).
    """
    keys: List[str] = []
    sources: Dict[str, List[str]] = {}
    for idx, raw in enumerate(headers):
        key = map_header(raw) if str(raw).strip() else str(idx)
        keys.append(key)
        sources.setdefault(key, []).append(str(raw))
    collisions = {k: v for k, v in sources.items() if len(v) > 1}
    return keys, collisions


def is_canonical(key: str) -> bool:
    return key in CANONICAL_FIELDS
