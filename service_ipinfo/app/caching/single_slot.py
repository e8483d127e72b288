"""
Single-slot cache coordinator for the upstream geolocation record.

The slot holds at most one record together with the monotonic time its fetch
completed. Reads and writes of the slot happen in short critical sections;
the upstream call always runs outside them so slow fetches never block
readers of a fresh record.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from shared.errors import FetchError, NetworkError, ParseError
from shared.logging import get_logger

from ..domain.records import GeoRecord

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


FRESHNESS_WINDOW_SECONDS = 60.0
CACHE_TYPE = "geo_record"


class Fetcher(Protocol):
    """Anything that can produce a fresh record, e.g. ``GeoApiClient``."""

    async def fetch(self) -> GeoRecord:
        ...


@dataclass(frozen=True)
class CacheSlot:
    """Immutable snapshot of the slot: a record and its fetch time, or neither."""

    record: Optional[GeoRecord] = None
    fetched_at: Optional[float] = None

    def __post_init__(self) -> None:
        if (self.record is None) != (self.fetched_at is None):
            raise ValueError("record and fetched_at must be set together")

    @property
    def is_empty(self) -> bool:
        return self.record is None

    def age(self, now: float) -> Optional[float]:
        if self.fetched_at is None:
            return None
        return now - self.fetched_at

    def is_fresh(self, now: float) -> bool:
        age = self.age(now)
        return age is not None and age < FRESHNESS_WINDOW_SECONDS


EMPTY_SLOT = CacheSlot()


class SingleSlotCache:
    """Serve the cached record while fresh, otherwise fetch and replace it.

    Without ``single_flight`` concurrent misses each call the fetcher and the
    last write wins. With it, concurrent misses await one shared fetch task.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
        single_flight: bool = False,
    ):
        self.fetcher = fetcher
        self.clock = clock
        self.metrics = metrics
        self.single_flight = single_flight
        self.logger = get_logger("ipinfo.cache")

        self._slot: CacheSlot = EMPTY_SLOT
        self._lock = threading.Lock()
        self._inflight: Optional["asyncio.Future[GeoRecord]"] = None
        self._fetch_count = 0

    @property
    def fetch_count(self) -> int:
        """Number of times the fetcher has been invoked."""
        return self._fetch_count

    def snapshot(self) -> CacheSlot:
        """Return the current slot contents."""
        with self._lock:
            return self._slot

    async def get_or_fetch(self) -> GeoRecord:
        """Return a fresh record, fetching from upstream when the slot is stale.

        Raises :class:`FetchError` unchanged from the fetcher; the slot keeps
        its previous contents in that case.
        """
        with self._lock:
            slot = self._slot
            now = self.clock()
            fresh = slot.is_fresh(now)

        if fresh:
            self.logger.debug("Returning cached record", age_seconds=round(slot.age(now), 3))
            self._count("cache_hits_total")
            return slot.record

        self.logger.info(
            "Cache miss or expired, fetching fresh record",
            empty=slot.is_empty,
            single_flight=self.single_flight,
        )
        self._count("cache_misses_total")
        return await self.refresh()

    async def refresh(self) -> GeoRecord:
        """Fetch and store a new record regardless of the current slot age."""
        if self.single_flight:
            return await self._join_inflight()
        return await self._fetch_and_store()

    async def _join_inflight(self) -> GeoRecord:
        with self._lock:
            task = self._inflight
            if task is None or task.done():
                task = asyncio.ensure_future(self._fetch_and_store())
                task.add_done_callback(self._release_inflight)
                self._inflight = task

        # A cancelled caller abandons its wait, not the shared fetch.
        return await asyncio.shield(task)

    def _release_inflight(self, task: "asyncio.Future[GeoRecord]") -> None:
        if not task.cancelled():
            # Mark the outcome as retrieved even if every waiter went away.
            task.exception()
        with self._lock:
            if self._inflight is task:
                self._inflight = None

    async def _fetch_and_store(self) -> GeoRecord:
        with self._lock:
            self._fetch_count += 1

        started = time.perf_counter()
        try:
            record = await self.fetcher.fetch()
        except FetchError as exc:
            self._record_fetch(self._outcome(exc), started)
            self.logger.warning(
                "Upstream fetch failed; slot left unchanged",
                code=exc.code,
                error=exc.message,
            )
            raise
        self._record_fetch("success", started)

        with self._lock:
            self._slot = CacheSlot(record=record, fetched_at=self.clock())

        self.logger.debug("Slot updated", address=record.address)
        return record

    @staticmethod
    def _outcome(exc: FetchError) -> str:
        if isinstance(exc, NetworkError):
            return "network_error"
        if isinstance(exc, ParseError):
            return "parse_error"
        return "error"

    def _count(self, metric_name: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, cache_type=CACHE_TYPE)

    def _record_fetch(self, outcome: str, started: float) -> None:
        if self.metrics is None:
            return
        self.metrics.increment_counter("upstream_fetches_total", outcome=outcome)
        self.metrics.observe_histogram("upstream_fetch_duration_seconds", time.perf_counter() - started)
