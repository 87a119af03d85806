"""In-memory dashboard session.

A `DashboardSession` owns the current record set and filter spec. Loads build
the new record set completely before swapping it in, so readers only ever see
the old set or the new one. Filter changes can be debounced: each change
restarts a short timer and only the latest spec is recomputed.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict
from typing import Any, Callable, Dict, Optional

from core.data import RecordSet, demo_source, ingest_text, load_source, prepare_context
from core.filters import FilterSpec, normalize_filters
from core.sources import TextSource


logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.25


class Debouncer:
    """Single-slot timer: every submit cancels the one still waiting."""

    def __init__(self, delay: float = DEBOUNCE_SECONDS) -> None:
        self.delay = delay
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def submit(self, fn: Callable[..., Any], *args: Any) -> int:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            timer = threading.Timer(self.delay, self._fire, args=(generation, fn, args))
            timer.daemon = True
            self._timer = timer
            timer.start()
            return generation

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _fire(self, generation: int, fn: Callable[..., Any], args: tuple) -> None:
        if not self.is_current(generation):
            return
        fn(*args)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1


class DashboardSession:
    def __init__(self, *, debounce_seconds: float = DEBOUNCE_SECONDS) -> None:
        self._lock = threading.RLock()
        self._record_set = RecordSet()
        self._filters = FilterSpec()
        self._debouncer = Debouncer(debounce_seconds)
        self._executor: Optional[ThreadPoolExecutor] = None

    # ---------------- State ----------------
    @property
    def record_set(self) -> RecordSet:
        with self._lock:
            return self._record_set

    @property
    def filters(self) -> FilterSpec:
        with self._lock:
            return self._filters

    def _swap(self, record_set: RecordSet) -> RecordSet:
        with self._lock:
            self._record_set = record_set
            self._filters = FilterSpec()
        return record_set

    # ---------------- Loading ----------------
    def load(self, source: TextSource, *, confirm_large: bool = False, has_header: bool = True) -> RecordSet:
        return self._swap(load_source(source, confirm_large=confirm_large, has_header=has_header))

    def load_text(self, text: str, source_name: str = "uploaded file", *, has_header: bool = True) -> RecordSet:
        return self._swap(ingest_text(text, source_name, has_header=has_header))

    def load_demo(self) -> RecordSet:
        return self.load(demo_source(), confirm_large=True)

    def load_in_background(self, source: TextSource, *, confirm_large: bool = False) -> Future:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="lab-loader")
            executor = self._executor
        return executor.submit(self.load, source, confirm_large=confirm_large)

    def clear(self) -> None:
        self._debouncer.cancel()
        self._swap(RecordSet())

    def close(self) -> None:
        self._debouncer.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    # ---------------- Filters ----------------
    def set_filters(self, filters: dict | FilterSpec | None = None, **changes: Any) -> FilterSpec:
        with self._lock:
            if filters is not None:
                spec = filters if isinstance(filters, FilterSpec) else normalize_filters(filters)
            else:
                spec = self._filters
            if changes:
                spec = normalize_filters({**asdict(spec), **changes})
            self._filters = spec
            return spec

    def update_filters(self, on_refresh: Callable[[Dict[str, object]], Any], filters: dict | FilterSpec | None = None, **changes: Any) -> int:
        """Set the filters now and deliver a fresh context after the debounce delay.

        Returns the generation number; a later call supersedes it and the
        earlier callback is never invoked.
        """
        self.set_filters(filters, **changes)
        return self._debouncer.submit(self._refresh, on_refresh)

    def _refresh(self, on_refresh: Callable[[Dict[str, object]], Any]) -> None:
        generation = self._debouncer.generation
        ctx = self.context()
        if self._debouncer.is_current(generation):
            on_refresh(ctx)
        else:
            logger.debug("dropping superseded refresh %s", generation)

    def context(self, filters: dict | FilterSpec | None = None) -> Dict[str, object]:
        with self._lock:
            record_set = self._record_set
            spec = self._filters if filters is None else filters
        return prepare_context(spec, record_set)
