"""Tiered dataset cache: remote, then last-known-good, then bundled copy."""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Callable, Optional

from ..errors import DatasetSourceError, NoDataAvailable
from .models import CachedDataset, Provenance, count_rows
from .sources import LocalDatasetSource, RemoteDatasetSource

logger = logging.getLogger(__name__)


class TieredDataCache:
    """Process-lifetime cache for the dataset with graceful degradation.

    Resolution order:
    - Remote fetch (fresh data, provenance REMOTE)
    - Last successfully loaded record (returned with ``stale=True``)
    - Bundled local copy (provenance LOCAL)

    A failed attempt never clears a previously loaded record. Concurrent
    callers of :meth:`resolve` share a single in-flight resolution.
    """

    def __init__(
        self,
        remote: RemoteDatasetSource,
        local: Optional[LocalDatasetSource] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the cache.

        Args:
            remote: Source queried first on every resolution.
            local: Bundled copy used when nothing has been cached yet.
            clock: Returns the current time in epoch seconds.
        """
        self.remote = remote
        self.local = local
        self._clock = clock

        self._current: CachedDataset = CachedDataset.empty()
        self._inflight: Optional[asyncio.Future] = None

        self.remote_successes = 0
        self.remote_failures = 0
        self.local_loads = 0
        self.stale_serves = 0

    @property
    def current(self) -> Optional[CachedDataset]:
        """The stored record, or None before the first successful load."""
        if self._current.is_empty:
            return None
        return self._current

    @property
    def has_ever_succeeded(self) -> bool:
        return not self._current.is_empty

    async def resolve(self) -> CachedDataset:
        """Return the freshest dataset any tier can supply.

        Raises:
            NoDataAvailable: If the remote fails, nothing is cached, and the
                bundled copy cannot be read.
        """
        if self._inflight is None:
            task = asyncio.ensure_future(self._resolve())
            task.add_done_callback(self._on_resolved)
            self._inflight = task
        else:
            logger.debug("Joining in-flight dataset resolution")
        return await asyncio.shield(self._inflight)

    def _on_resolved(self, task: asyncio.Future) -> None:
        if self._inflight is task:
            self._inflight = None
        # Mark the exception retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    async def _resolve(self) -> CachedDataset:
        remote_error: Optional[Exception] = None
        try:
            payload = await self.remote.fetch()
            self._check_payload(payload, self.remote.name)
        except Exception as e:
            remote_error = e
            self.remote_failures += 1
            logger.warning(f"Remote dataset fetch failed: {e}")
        else:
            self.remote_successes += 1
            record = self._store(payload, Provenance.REMOTE)
            logger.info(f"Dataset refreshed from remote ({len(payload)} bytes)")
            return record

        if not self._current.is_empty:
            self.stale_serves += 1
            logger.info(
                f"Serving cached dataset from {self._current.provenance.value} "
                f"(age {self.age_seconds:.0f}s)"
            )
            return replace(self._current, stale=True)

        try:
            if self.local is None:
                raise DatasetSourceError("No bundled dataset configured", source="local")
            payload = await self.local.fetch()
            self._check_payload(payload, self.local.name)
        except Exception as e:
            logger.error(f"Bundled dataset unavailable: {e}")
            raise NoDataAvailable(remote_error=remote_error, local_error=e) from e

        self.local_loads += 1
        record = self._store(payload, Provenance.LOCAL)
        logger.info(f"Dataset loaded from bundled copy {self.local.path}")
        return record

    @staticmethod
    def _check_payload(payload: str, source: str) -> None:
        # An empty body or a header without rows counts as a failed attempt
        if not payload.strip():
            raise DatasetSourceError(f"{source} dataset is empty", source=source)
        if count_rows(payload) == 0:
            raise DatasetSourceError(f"{source} dataset has no data rows", source=source)

    def _store(self, payload: str, provenance: Provenance) -> CachedDataset:
        now = self._clock()
        previous = self._current.refreshed_at
        if previous is not None and now < previous:
            now = previous
        record = CachedDataset(payload=payload, provenance=provenance, refreshed_at=now)
        self._current = record
        return record

    async def warm(self) -> bool:
        """Resolve once, logging instead of raising when no data is available.

        Returns:
            True if the cache holds a dataset afterwards.
        """
        try:
            record = await self.resolve()
        except NoDataAvailable as e:
            logger.warning(f"Dataset warm-up failed, service not ready: {e}")
            return False
        logger.info(f"Dataset warm-up complete (provenance: {record.provenance.value})")
        return True

    @property
    def age_seconds(self) -> float:
        """Seconds since the last successful load."""
        if self._current.refreshed_at is None:
            return float("inf")
        return self._clock() - self._current.refreshed_at

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with cache statistics.
        """
        return {
            "provenance": self._current.provenance.value,
            "refreshed_at": self._current.refreshed_at,
            "age_seconds": self.age_seconds if self.has_ever_succeeded else None,
            "remote_successes": self.remote_successes,
            "remote_failures": self.remote_failures,
            "local_loads": self.local_loads,
            "stale_serves": self.stale_serves,
            "has_ever_succeeded": self.has_ever_succeeded,
            "columns": list(self._current.table),
        }

    async def aclose(self) -> None:
        """Stop any in-flight resolution, then close the remote source's HTTP client."""
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            logger.debug("Cancelling in-flight dataset resolution")
            inflight.cancel()
            await asyncio.wait([inflight])
        await self.remote.aclose()
