from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


ALL = "All"


@dataclass(frozen=True)
class FilterSpec:
    search_term: str = ""
    provider: str = ALL
    year: str = ALL

    @property
    def is_unfiltered(self) -> bool:
        return not self.search_term and self.provider == ALL and self.year == ALL


def _as_choice(value: object) -> str:
    if value is None:
        return ALL
    s = str(value)
    return s if s.strip() else ALL


def normalize_filters(raw: Optional[dict]) -> FilterSpec:
    raw = raw or {}
    search_term = str(raw.get("search_term") or "")
    return FilterSpec(
        search_term=search_term,
        provider=_as_choice(raw.get("provider")),
        year=_as_choice(raw.get("year")),
    )
