from __future__ import annotations

from typing import Iterable, List, Mapping

import pandas as pd

from core.headers import CANONICAL_FIELDS


ID_KEY_FIELDS = ("date", "provider", "marker", "value")


def to_int32(value: int) -> int:
    """Wrap an arbitrary int to the signed 32-bit range."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def utf16_code_units(text: str) -> List[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    return [int.from_bytes(data[i : i + 2], "little") for i in range(0, len(data), 2)]


def rolling_hash32(text: str) -> int:
    """h = h * 31 + unit over UTF-16 code units, wrapped to int32 at every step."""
    h = 0
    for unit in utf16_code_units(text):
        h = to_int32(h * 31 + unit)
    return h


def id_key(row: Mapping[str, object]) -> str:
    return "|".join(str(row.get(k) or "") for k in ID_KEY_FIELDS)


def generate_stable_id(row: Mapping[str, object]) -> str:
    # Two distinct rows can hash to the same id; they are not disambiguated.
    return str(abs(rolling_hash32(id_key(row))))


def empty_records() -> pd.DataFrame:
    return pd.DataFrame(columns=list(CANONICAL_FIELDS), dtype=object)


def materialize(rows: Iterable[Mapping[str, str]]) -> pd.DataFrame:
    """Turn parsed rows into the record table, keeping supplied ids and filling in synthetic ones."""
    records = []
    for row in rows:
        record = dict(row)
        if not record.get("id"):
            record["id"] = generate_stable_id(record)
        records.append(record)
    if not records:
        return empty_records()
    df = pd.DataFrame.from_records(records)
    return df.fillna("").astype(object)
