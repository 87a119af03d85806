"""Delimited-text parsing for lab exports.

Rows come back as plain dicts keyed by canonical field names (see
`core.headers`). Row-level problems never stop the parse: they are collected
as `RowParseWarning`s next to the rows.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.errors import FatalParseError, RowParseWarning
from core.headers import map_headers


logger = logging.getLogger(__name__)

RawRow = Dict[str, str]


@dataclass
class ParseResult:
    fields: List[str] = field(default_factory=list)
    rows: List[RawRow] = field(default_factory=list)
    errors: List[RowParseWarning] = field(default_factory=list)


def _is_blank(cells: List[str]) -> bool:
    return not cells or (len(cells) == 1 and not cells[0].strip())


def _align_row(fields: List[str], cells: List[str]) -> RawRow:
    row: RawRow = {}
    for idx, key in enumerate(fields):
        row[key] = cells[idx] if idx < len(cells) else ""
    for idx in range(len(fields), len(cells)):
        row[str(idx)] = cells[idx]
    return row


class _LineFeed:
    """Physical lines handed to `csv.reader` one at a time; rewindable after a bad record."""

    def __init__(self, text: str) -> None:
        self.lines = io.StringIO(text, newline="").readlines()
        self.pos = 0

    def __iter__(self) -> "_LineFeed":
        return self

    def __next__(self) -> str:
        if self.pos >= len(self.lines):
            raise StopIteration
        line = self.lines[self.pos]
        self.pos += 1
        return line


def _lenient_cells(line: str, delimiter: str) -> List[str]:
    return next(csv.reader([line.rstrip("\r\n")], delimiter=delimiter, strict=False), [])


def parse_delimited(text: Optional[str], *, has_header: bool = True, delimiter: str = ",") -> ParseResult:
    if text is None or not text.strip():
        raise FatalParseError("The input is empty.")
    if text.startswith("\ufeff"):
        text = text[1:]

    feed = _LineFeed(text)
    reader = csv.reader(feed, delimiter=delimiter, strict=True)
    result = ParseResult()
    fields: Optional[List[str]] = None
    data_row = 0

    while True:
        start = feed.pos
        quote_error: Optional[csv.Error] = None
        try:
            cells = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            # re-read only the first physical line of the bad record, then resume after it
            quote_error = exc
            feed.pos = start + 1
            cells = _lenient_cells(feed.lines[start], delimiter)

        if _is_blank(cells):
            continue

        if fields is None:
            if has_header:
                if not any(c.strip() for c in cells):
                    raise FatalParseError("Could not find a header row.")
                fields, collisions = map_headers(cells)
                if quote_error is not None:
                    result.errors.append(
                        RowParseWarning(row=0, message=f"Malformed quoting on line {start + 1}: {quote_error}", code="InvalidQuotes")
                    )
                for key, sources in collisions.items():
                    result.errors.append(
                        RowParseWarning(
                            row=0,
                            message=f"Columns {', '.join(repr(s) for s in sources)} all map to '{key}'; the last one wins.",
                            code="DuplicateHeader",
                        )
                    )
                continue
            fields = [str(i) for i in range(len(cells))]

        data_row += 1
        if quote_error is not None:
            result.errors.append(
                RowParseWarning(row=data_row, message=f"Malformed quoting on line {start + 1}: {quote_error}", code="InvalidQuotes")
            )
        elif len(cells) < len(fields):
            result.errors.append(
                RowParseWarning(
                    row=data_row,
                    message=f"Too few fields: expected {len(fields)} fields but parsed {len(cells)}",
                    code="TooFewFields",
                )
            )
        elif len(cells) > len(fields):
            result.errors.append(
                RowParseWarning(
                    row=data_row,
                    message=f"Too many fields: expected {len(fields)} fields but parsed {len(cells)}",
                    code="TooManyFields",
                )
            )
        result.rows.append(_align_row(fields, cells))

    if fields is None:
        raise FatalParseError("Could not find a header row.")

    result.fields = list(dict.fromkeys(fields))
    for err in result.errors:
        logger.debug("row %s: %s", err.row, err.message)
    return result
