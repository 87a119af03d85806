from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Protocol

import requests

from core.errors import SourceUnavailableError


DEFAULT_LARGE_FILE_WARNING_MB = 10.0


def large_file_warning_mb() -> float:
    raw = os.getenv("LAB_LARGE_FILE_WARNING_MB")
    try:
        return float(raw) if raw else DEFAULT_LARGE_FILE_WARNING_MB
    except ValueError:
        return DEFAULT_LARGE_FILE_WARNING_MB


def size_warning(num_bytes: Optional[int], *, threshold_mb: Optional[float] = None) -> Optional[str]:
    """Confirmation prompt for inputs above the soft threshold, else None."""
    if not num_bytes:
        return None
    threshold = large_file_warning_mb() if threshold_mb is None else threshold_mb
    size_mb = num_bytes / (1024 * 1024)
    if size_mb <= threshold:
        return None
    return f"This file is {size_mb:.2f} MB. Large files may take a while to process. Continue?"


def decode_text(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


class TextSource(Protocol):
    name: str

    def size_bytes(self) -> Optional[int]: ...

    def read_text(self) -> str: ...


class FileTextSource:
    def __init__(self, path: Path | str, *, name: Optional[str] = None) -> None:
        self.path = Path(path)
        self.name = name or self.path.name

    def size_bytes(self) -> Optional[int]:
        try:
            return self.path.stat().st_size
        except OSError:
            return None

    def read_text(self) -> str:
        try:
            return decode_text(self.path.read_bytes())
        except OSError as exc:
            raise SourceUnavailableError(f"Failed to read {self.name}: {exc}", source=self.name) from exc


class UploadedTextSource:
    def __init__(self, name: str, data: bytes) -> None:
        self.name = name or "uploaded file"
        self.data = data

    def size_bytes(self) -> Optional[int]:
        return len(self.data)

    def read_text(self) -> str:
        return decode_text(self.data)


class HttpTextSource:
    def __init__(self, url: str, *, name: Optional[str] = None, timeout: float = 10.0) -> None:
        self.url = url
        self.name = name or url.rsplit("/", 1)[-1] or url
        self.timeout = timeout

    def size_bytes(self) -> Optional[int]:
        # Unknown until fetched; the soft size gate does not apply to remote samples.
        return None

    def read_text(self) -> str:
        try:
            resp = requests.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise SourceUnavailableError(f"Failed to load {self.name}: {exc}", source=self.name) from exc
        return decode_text(resp.content)
