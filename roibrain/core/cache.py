"""Two-tier response cache with stampede protection and negative caching.

Lookup order for a key: in-process LRU tier, persistent tier, an in-flight
computation for the same key, and finally a new computation. Concurrent
callers for one key share a single computation. A failed computation is
remembered for a short TTL so retries don't hammer the model.

The service is module-scoped: use ``get_response_cache()`` and
``init_response_cache()``; the underlying maps are never exposed.
"""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from roibrain.core.config import get_settings
from roibrain.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    INTERNAL_ERROR_TYPE,
    CachedFailureError,
    ROIBrainError,
    RequestCancelled,
)
from roibrain.core.logging import get_logger
from roibrain.db.roi_brain_cache import (
    purge_expired_responses,
    read_cached_response,
    store_cached_response,
)

logger = get_logger(__name__)

Payload = dict[str, Any]
ComputeFn = Callable[[], Awaitable[Payload]]

SOURCE_L1 = "l1"
SOURCE_L2 = "l2"
SOURCE_JOINED = "joined"
SOURCE_COMPUTED = "computed"


# =============================================================================
# Tier 1
# =============================================================================


@dataclass
class CacheEntry:
    key: str
    payload: Payload | None
    stored_at: float
    expires_at: float
    last_access: float
    hit_count: int = 0
    negative: bool = False
    error: dict[str, Any] | None = None


class LRUCache:
    """
    Bounded in-process cache with lazy TTL expiry.

    Reads promote an entry to most-recently-used; inserts evict the
    least-recently-used entry once capacity is exceeded.
    """

    def __init__(
        self,
        max_size: int,
        ttl_seconds: float,
        negative_ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max(1, max_size)
        self.ttl_seconds = ttl_seconds
        self.negative_ttl_seconds = negative_ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if now >= entry.expires_at:
            del self._entries[key]
            return None
        entry.hit_count += 1
        entry.last_access = now
        self._entries.move_to_end(key)
        return entry

    def _put(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry
        self._entries.move_to_end(entry.key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"L1 evicted {evicted[:12]}")

    def set(self, key: str, payload: Payload) -> None:
        now = self._clock()
        self._put(
            CacheEntry(
                key=key,
                payload=payload,
                stored_at=now,
                expires_at=now + self.ttl_seconds,
                last_access=now,
            )
        )

    def set_negative(self, key: str, error: Exception) -> None:
        if isinstance(error, ROIBrainError):
            stored = {
                "message": error.message,
                "status_code": error.status_code,
                "details": error.details,
                "type": type(error).__name__,
            }
        else:
            stored = {
                "message": INTERNAL_ERROR_MESSAGE,
                "status_code": 500,
                "details": None,
                "type": INTERNAL_ERROR_TYPE,
            }
        now = self._clock()
        self._put(
            CacheEntry(
                key=key,
                payload=None,
                stored_at=now,
                expires_at=now + self.negative_ttl_seconds,
                last_access=now,
                negative=True,
                error=stored,
            )
        )

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def cleanup(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        negative = sum(1 for e in self._entries.values() if e.negative)
        return {
            "size": len(self._entries),
            "maxSize": self.max_size,
            "negativeEntries": negative,
            "ttlSeconds": self.ttl_seconds,
            "negativeTtlSeconds": self.negative_ttl_seconds,
        }


# =============================================================================
# Orchestration of tiers
# =============================================================================


@dataclass
class CacheResult:
    payload: Payload
    source: str

    @property
    def hit(self) -> bool:
        return self.source in (SOURCE_L1, SOURCE_L2)


def _consume_outcome(task: asyncio.Task) -> None:
    # Marks the failure as retrieved when every waiter has already left
    if not task.cancelled():
        task.exception()


@dataclass
class _InFlight:
    task: asyncio.Task
    waiters: int = 0


@dataclass
class _Counters:
    l1_hits: int = 0
    l2_hits: int = 0
    negative_hits: int = 0
    misses: int = 0
    joins: int = 0
    computations: int = 0
    failures: int = 0
    cancellations: int = 0
    l2_writes: int = 0
    l2_write_failures: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "l1Hits": self.l1_hits,
            "l2Hits": self.l2_hits,
            "negativeHits": self.negative_hits,
            "misses": self.misses,
            "joins": self.joins,
            "computations": self.computations,
            "failures": self.failures,
            "cancellations": self.cancellations,
            "l2Writes": self.l2_writes,
            "l2WriteFailures": self.l2_write_failures,
        }


class ResponseCache:
    """Get-or-compute over the two tiers with single-flight computation."""

    def __init__(
        self,
        l1: LRUCache,
        l2_enabled: bool = True,
        l2_ttl_seconds: int = 1200,
    ):
        self._l1 = l1
        self._l2_enabled = l2_enabled
        self._l2_ttl_seconds = l2_ttl_seconds
        self._in_flight: dict[str, _InFlight] = {}
        self._background: set[asyncio.Task] = set()
        self._counters = _Counters()

    async def get_or_compute(
        self,
        key: str,
        compute: ComputeFn,
        abort: asyncio.Event | None = None,
        vertical: str | None = None,
    ) -> CacheResult:
        """
        Return the cached payload for ``key`` or compute it once.

        Args:
            key: Content-hash cache key
            compute: Coroutine factory producing the payload on a miss
            abort: Optional event; when set the caller stops waiting
            vertical: Stored alongside persistent rows

        Returns:
            CacheResult with the payload and the tier that served it

        Raises:
            CachedFailureError: A recent failure for this key is still cached
            RequestCancelled: ``abort`` was set before a result was available
            ROIBrainError: The computation failed
        """
        if abort is not None and abort.is_set():
            raise RequestCancelled("Request aborted before cache lookup")

        cached = self._from_l1(key)
        if cached is not None:
            return cached

        if self._l2_enabled:
            payload = await self._await_abortable(read_cached_response(key), abort)
            if payload is not None:
                self._counters.l2_hits += 1
                self._l1.set(key, payload)
                return CacheResult(payload, SOURCE_L2)
            # Another computation may have settled while the read was pending
            cached = self._from_l1(key)
            if cached is not None:
                return cached

        # No await from here until the in-flight entry is registered
        flight = self._in_flight.get(key)
        if flight is not None:
            self._counters.joins += 1
            source = SOURCE_JOINED
        else:
            self._counters.misses += 1
            task = asyncio.create_task(self._run(key, compute, vertical))
            task.add_done_callback(_consume_outcome)
            flight = _InFlight(task=task)
            self._in_flight[key] = flight
            source = SOURCE_COMPUTED

        flight.waiters += 1
        try:
            payload = await self._wait(flight.task, abort)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                # Last waiter left: stop the computation
                self._counters.cancellations += 1
                if self._in_flight.get(key) is flight:
                    del self._in_flight[key]
                flight.task.cancel()
        return CacheResult(payload, source)

    def _from_l1(self, key: str) -> CacheResult | None:
        entry = self._l1.get(key)
        if entry is None:
            return None
        if entry.negative:
            self._counters.negative_hits += 1
            err = entry.error or {}
            raise CachedFailureError(
                err.get("message", INTERNAL_ERROR_MESSAGE),
                status_code=err.get("status_code", 500),
                details=err.get("details"),
            )
        self._counters.l1_hits += 1
        return CacheResult(entry.payload, SOURCE_L1)

    async def _await_abortable(self, coro: Awaitable[Any], abort: asyncio.Event | None) -> Any:
        if abort is None:
            return await coro
        task = asyncio.ensure_future(coro)
        try:
            return await self._wait(task, abort)
        finally:
            if not task.done():
                task.cancel()

    @staticmethod
    async def _wait(task: asyncio.Future, abort: asyncio.Event | None) -> Any:
        if abort is None:
            return await asyncio.shield(task)
        abort_wait = asyncio.create_task(abort.wait())
        try:
            done, _ = await asyncio.wait({task, abort_wait}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            abort_wait.cancel()
        if task in done:
            return task.result()
        raise RequestCancelled("Request aborted while waiting for result")

    async def _run(self, key: str, compute: ComputeFn, vertical: str | None) -> Payload:
        self._counters.computations += 1
        try:
            payload = await compute()
        except asyncio.CancelledError:
            logger.info(f"Computation for {key[:12]} cancelled; nothing cached")
            raise
        except Exception as e:
            self._counters.failures += 1
            self._l1.set_negative(key, e)
            logger.warning(f"Computation for {key[:12]} failed, negative-cached: {e}")
            raise
        else:
            self._l1.set(key, payload)
            if self._l2_enabled:
                self._spawn(self._write_l2(key, payload, vertical))
            return payload
        finally:
            current = self._in_flight.get(key)
            if current is not None and current.task is asyncio.current_task():
                del self._in_flight[key]

    async def _write_l2(self, key: str, payload: Payload, vertical: str | None) -> None:
        stored = await store_cached_response(key, payload, self._l2_ttl_seconds, vertical)
        if stored:
            self._counters.l2_writes += 1
        else:
            self._counters.l2_write_failures += 1

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for pending persistent-tier writes (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def cleanup(self) -> dict[str, int]:
        """Drop expired entries from both tiers; returns per-tier removal counts."""
        removed = {"l1": self._l1.cleanup(), "l2": 0}
        if self._l2_enabled:
            removed["l2"] = await purge_expired_responses()
        return removed

    def clear(self) -> None:
        """Drop every Tier-1 entry and reset counters. In-flight work is untouched."""
        self._l1.clear()
        self._counters = _Counters()

    def metrics(self) -> dict[str, Any]:
        return {
            "l1": self._l1.stats(),
            "l2": {"enabled": self._l2_enabled, "ttlSeconds": self._l2_ttl_seconds},
            "inFlight": len(self._in_flight),
            "pendingWrites": len(self._background),
            "counters": self._counters.as_dict(),
        }


# =============================================================================
# Module-scoped service
# =============================================================================

_response_cache: ResponseCache | None = None


def init_response_cache(
    max_size: int | None = None,
    ttl_seconds: float | None = None,
    negative_ttl_seconds: float | None = None,
    l2_enabled: bool | None = None,
    l2_ttl_seconds: int | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> ResponseCache:
    """
    (Re)create the process-wide response cache.

    Unspecified parameters come from settings.
    """
    global _response_cache
    settings = get_settings()
    l1 = LRUCache(
        max_size=max_size if max_size is not None else settings.CACHE_L1_MAX_SIZE,
        ttl_seconds=ttl_seconds if ttl_seconds is not None else settings.CACHE_TTL_SECONDS,
        negative_ttl_seconds=(
            negative_ttl_seconds
            if negative_ttl_seconds is not None
            else settings.CACHE_NEGATIVE_TTL_SECONDS
        ),
        clock=clock,
    )
    _response_cache = ResponseCache(
        l1,
        l2_enabled=l2_enabled if l2_enabled is not None else settings.CACHE_L2_ENABLED,
        l2_ttl_seconds=l2_ttl_seconds if l2_ttl_seconds is not None else settings.CACHE_L2_TTL_SECONDS,
    )
    return _response_cache


def get_response_cache() -> ResponseCache:
    """Process-wide response cache, created from settings on first use."""
    if _response_cache is None:
        return init_response_cache()
    return _response_cache
