from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

from core.data import load_reference_dim, panel_options
from core.filters import ALL


SEARCH_COLUMNS = ("marker", "low", "high", "clinical")

DISCLAIMER = (
    "This reference chart provides correlations between blood work markers and nutrients for "
    "educational purposes only. It is not medical advice; consult a healthcare provider to interpret results."
)


def filter_reference(reference: pd.DataFrame, search_term: str = "", panel: str = ALL) -> pd.DataFrame:
    if reference.empty:
        return reference.copy()
    mask = pd.Series(True, index=reference.index)
    term = (search_term or "").lower()
    if term:
        text_mask = pd.Series(False, index=reference.index)
        for col in SEARCH_COLUMNS:
            if col in reference.columns:
                text_mask |= reference[col].fillna("").astype(str).str.lower().str.contains(term, regex=False)
        mask &= text_mask
    if panel and panel != ALL:
        mask &= reference["panel"] == panel
    return reference[mask].copy()


def group_by_panel(reference: pd.DataFrame) -> Dict[str, List[Dict[str, Any]]]:
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for row in reference.to_dict(orient="records"):
        groups.setdefault(row.get("panel", ""), []).append(row)
    return groups


def compute_reference(search_term: str = "", panel: str = ALL, *, reference: Optional[pd.DataFrame] = None) -> Dict[str, Any]:
    ref = load_reference_dim() if reference is None else reference
    filtered = filter_reference(ref, search_term, panel)
    return {
        "search_term": search_term,
        "panel": panel,
        "panels": panel_options(ref),
        "count": int(len(filtered)),
        "total": int(len(ref)),
        "groups": group_by_panel(filtered),
        "disclaimer": DISCLAIMER,
    }
