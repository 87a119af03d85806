from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class LabDataError(Exception):
    """Base class for ingestion failures surfaced to the user."""


class FatalParseError(LabDataError):
    """No data could be extracted at all (empty input, no usable header)."""


class EmptyResultError(LabDataError):
    def __init__(self, message: str = "No data found in the CSV file.") -> None:
        super().__init__(message)


class SourceUnavailableError(LabDataError):
    """The text source could not be read or fetched."""

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class LargeInputWarning(LabDataError):
    """Input is above the soft size threshold and was not confirmed."""

    def __init__(self, message: str, *, size_bytes: int) -> None:
        super().__init__(message)
        self.size_bytes = size_bytes


@dataclass(frozen=True)
class RowParseWarning:
    row: int
    message: str
    code: str = "RowMalformed"

    def as_dict(self) -> dict:
        return {"row": self.row, "message": self.message, "code": self.code}
