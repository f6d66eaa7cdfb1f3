"""Tests for the two-tier response cache."""

import asyncio
import gc
from unittest.mock import AsyncMock, patch

import pytest

from roibrain.core.cache import (
    SOURCE_COMPUTED,
    SOURCE_JOINED,
    SOURCE_L1,
    SOURCE_L2,
    LRUCache,
    get_response_cache,
    init_response_cache,
)
from roibrain.core.errors import (
    CachedFailureError,
    OutputParseError,
    RequestCancelled,
    UpstreamModelError,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# =============================================================================
# Tier 1
# =============================================================================


def test_lru_evicts_least_recently_used():
    lru = LRUCache(max_size=2, ttl_seconds=60, negative_ttl_seconds=5)
    lru.set("a", {"v": "a"})
    lru.set("b", {"v": "b"})

    assert lru.get("a") is not None  # promotes a
    lru.set("c", {"v": "c"})

    assert len(lru) == 2
    assert lru.get("b") is None
    assert lru.get("a").payload == {"v": "a"}
    assert lru.get("c").payload == {"v": "c"}


def test_lru_overfilled_by_one_evicts_exactly_one():
    lru = LRUCache(max_size=3, ttl_seconds=60, negative_ttl_seconds=5)
    for key in ("k1", "k2", "k3", "k4"):
        lru.set(key, {"key": key})

    assert len(lru) == 3
    assert lru.get("k1") is None
    assert all(lru.get(k) is not None for k in ("k2", "k3", "k4"))


def test_lru_lazy_ttl_and_hit_tracking():
    clock = FakeClock()
    lru = LRUCache(max_size=5, ttl_seconds=60, negative_ttl_seconds=5, clock=clock)
    lru.set("k", {"ok": True})

    clock.now += 30
    entry = lru.get("k")
    assert entry.hit_count == 1
    assert entry.last_access == clock.now

    clock.now += 31
    assert lru.get("k") is None
    assert len(lru) == 0


def test_negative_entries_expire_sooner_and_cleanup():
    clock = FakeClock()
    lru = LRUCache(max_size=5, ttl_seconds=60, negative_ttl_seconds=5, clock=clock)
    lru.set("good", {"ok": True})
    lru.set_negative("bad", UpstreamModelError("boom"))

    clock.now += 10
    assert lru.cleanup() == 1
    assert lru.get("good") is not None
    assert lru.get("bad") is None


# =============================================================================
# Get-or-compute
# =============================================================================


@pytest.mark.asyncio
async def test_second_call_is_served_from_l1(response_cache):
    compute = AsyncMock(return_value={"success": True})

    first = await response_cache.get_or_compute("key-1", compute)
    second = await response_cache.get_or_compute("key-1", compute)

    assert first.source == SOURCE_COMPUTED
    assert second.source == SOURCE_L1
    assert second.hit is True
    assert compute.await_count == 1


@pytest.mark.asyncio
async def test_concurrent_identical_keys_compute_once(response_cache):
    gate = asyncio.Event()
    calls = 0

    async def compute():
        nonlocal calls
        calls += 1
        await gate.wait()
        return {"report": "shared"}

    first = asyncio.create_task(response_cache.get_or_compute("same", compute))
    second = asyncio.create_task(response_cache.get_or_compute("same", compute))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert response_cache.metrics()["inFlight"] == 1

    gate.set()
    results = await asyncio.gather(first, second)

    assert calls == 1
    assert {r.source for r in results} == {SOURCE_COMPUTED, SOURCE_JOINED}
    assert results[0].payload == results[1].payload == {"report": "shared"}
    assert response_cache.metrics()["inFlight"] == 0


@pytest.mark.asyncio
async def test_failure_is_negative_cached_with_status(response_cache):
    compute = AsyncMock(side_effect=OutputParseError("no json"))

    with pytest.raises(OutputParseError):
        await response_cache.get_or_compute("bad", compute)
    with pytest.raises(CachedFailureError) as exc_info:
        await response_cache.get_or_compute("bad", compute)

    assert exc_info.value.status_code == 400
    assert compute.await_count == 1
    assert response_cache.metrics()["inFlight"] == 0
    assert response_cache.metrics()["counters"]["negativeHits"] == 1


@pytest.mark.asyncio
async def test_negative_entry_expires_and_allows_retry():
    clock = FakeClock()
    cache = init_response_cache(
        max_size=10, ttl_seconds=600, negative_ttl_seconds=60, l2_enabled=False, clock=clock
    )
    compute = AsyncMock(side_effect=[UpstreamModelError("down"), {"success": True}])

    with pytest.raises(UpstreamModelError):
        await cache.get_or_compute("retry", compute)
    clock.now += 61
    result = await cache.get_or_compute("retry", compute)

    assert result.payload == {"success": True}
    assert compute.await_count == 2


@pytest.mark.asyncio
async def test_abort_cancels_last_waiter_and_writes_nothing(response_cache):
    started = asyncio.Event()
    cancelled = []

    async def compute():
        started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.append(True)
            raise
        return {"never": True}

    abort = asyncio.Event()
    task = asyncio.create_task(response_cache.get_or_compute("slow", compute, abort=abort))
    await started.wait()
    abort.set()

    with pytest.raises(RequestCancelled):
        await task
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert cancelled == [True]
    metrics = response_cache.metrics()
    assert metrics["inFlight"] == 0
    assert metrics["l1"]["size"] == 0
    assert metrics["counters"]["cancellations"] == 1


@pytest.mark.asyncio
async def test_abort_of_one_waiter_keeps_shared_computation(response_cache):
    gate = asyncio.Event()
    compute_calls = 0

    async def compute():
        nonlocal compute_calls
        compute_calls += 1
        await gate.wait()
        return {"value": 42}

    abort = asyncio.Event()
    leaver = asyncio.create_task(response_cache.get_or_compute("k", compute, abort=abort))
    stayer = asyncio.create_task(response_cache.get_or_compute("k", compute))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    abort.set()
    with pytest.raises(RequestCancelled):
        await leaver

    gate.set()
    result = await stayer
    assert result.payload == {"value": 42}
    assert compute_calls == 1


@pytest.mark.asyncio
async def test_preset_abort_raises_before_lookup(response_cache):
    abort = asyncio.Event()
    abort.set()
    compute = AsyncMock(return_value={})

    with pytest.raises(RequestCancelled):
        await response_cache.get_or_compute("k", compute, abort=abort)
    compute.assert_not_awaited()


# =============================================================================
# Tier 2
# =============================================================================


@pytest.mark.asyncio
async def test_l2_hit_populates_l1():
    cache = init_response_cache(max_size=10, l2_enabled=True)
    compute = AsyncMock(return_value={"fresh": True})

    with patch(
        "roibrain.core.cache.read_cached_response", new=AsyncMock(return_value={"stored": True})
    ) as read:
        first = await cache.get_or_compute("persisted", compute)
        second = await cache.get_or_compute("persisted", compute)

    assert first.source == SOURCE_L2
    assert second.source == SOURCE_L1
    assert second.payload == {"stored": True}
    assert read.await_count == 1
    compute.assert_not_awaited()


@pytest.mark.asyncio
async def test_compute_writes_both_tiers():
    cache = init_response_cache(max_size=10, l2_enabled=True, l2_ttl_seconds=1200)
    compute = AsyncMock(return_value={"fresh": True})

    with patch("roibrain.core.cache.read_cached_response", new=AsyncMock(return_value=None)), patch(
        "roibrain.core.cache.store_cached_response", new=AsyncMock(return_value=True)
    ) as store:
        result = await cache.get_or_compute("new", compute, vertical="dental")
        await cache.drain()

    assert result.source == SOURCE_COMPUTED
    store.assert_awaited_once_with("new", {"fresh": True}, 1200, "dental")
    assert cache.metrics()["counters"]["l2Writes"] == 1
    assert cache.metrics()["l1"]["size"] == 1


@pytest.mark.asyncio
async def test_failed_l2_write_still_serves_request():
    cache = init_response_cache(max_size=10, l2_enabled=True)
    compute = AsyncMock(return_value={"fresh": True})

    with patch("roibrain.core.cache.read_cached_response", new=AsyncMock(return_value=None)), patch(
        "roibrain.core.cache.store_cached_response", new=AsyncMock(return_value=False)
    ):
        result = await cache.get_or_compute("new", compute)
        await cache.drain()

    assert result.payload == {"fresh": True}
    assert cache.metrics()["counters"]["l2WriteFailures"] == 1


@pytest.mark.asyncio
async def test_failure_is_never_written_to_l2():
    cache = init_response_cache(max_size=10, l2_enabled=True)

    with patch("roibrain.core.cache.read_cached_response", new=AsyncMock(return_value=None)), patch(
        "roibrain.core.cache.store_cached_response", new=AsyncMock(return_value=True)
    ) as store:
        with pytest.raises(UpstreamModelError):
            await cache.get_or_compute("k", AsyncMock(side_effect=UpstreamModelError("down")))
        await cache.drain()

    store.assert_not_awaited()


def test_module_service_lifecycle():
    created = init_response_cache(max_size=3, l2_enabled=False)

    assert get_response_cache() is created
    metrics = created.metrics()
    assert metrics["l1"]["maxSize"] == 3
    assert metrics["l2"]["enabled"] is False

    created.clear()
    assert created.metrics()["counters"]["misses"] == 0


# =============================================================================
# Failure handling
# =============================================================================


@pytest.mark.asyncio
async def test_unexpected_failure_is_cached_without_its_message(response_cache):
    compute = AsyncMock(side_effect=RuntimeError("secret stack detail"))

    with pytest.raises(RuntimeError):
        await response_cache.get_or_compute("boom", compute)
    with pytest.raises(CachedFailureError) as exc_info:
        await response_cache.get_or_compute("boom", compute)

    assert exc_info.value.status_code == 500
    assert "secret" not in exc_info.value.message
    assert exc_info.value.details is None


@pytest.mark.asyncio
async def test_abandoned_failing_computation_leaves_no_unretrieved_exception(response_cache):
    loop = asyncio.get_running_loop()
    reported = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context))
    started = asyncio.Event()

    async def compute():
        started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            raise RuntimeError("teardown failed")
        return {}

    try:
        abort = asyncio.Event()
        leaver = asyncio.create_task(response_cache.get_or_compute("gone", compute, abort=abort))
        await started.wait()
        abort.set()
        with pytest.raises(RequestCancelled):
            await leaver
        for _ in range(3):
            await asyncio.sleep(0)
        del leaver
        gc.collect()
    finally:
        loop.set_exception_handler(None)

    assert response_cache.metrics()["counters"]["failures"] == 1
    assert not [c for c in reported if "never retrieved" in c.get("message", "")]


# =============================================================================
# Tier 2 races and maintenance
# =============================================================================


def _slow_reads(*delays):
    """Persistent-tier read that misses after a per-call delay."""
    pending = list(delays)

    async def read(key):
        await asyncio.sleep(pending.pop(0))
        return None

    return read


@pytest.mark.asyncio
async def test_result_settled_during_slow_l2_read_is_reused():
    cache = init_response_cache(max_size=10, l2_enabled=True)
    compute = AsyncMock(return_value={"report": "once"})

    with patch("roibrain.core.cache.read_cached_response", new=_slow_reads(0, 0.05)), patch(
        "roibrain.core.cache.store_cached_response", new=AsyncMock(return_value=True)
    ):
        fast, slow = await asyncio.gather(
            cache.get_or_compute("race", compute), cache.get_or_compute("race", compute)
        )
        await cache.drain()

    assert compute.await_count == 1
    assert fast.source == SOURCE_COMPUTED
    assert slow.source == SOURCE_L1
    assert slow.payload == {"report": "once"}


@pytest.mark.asyncio
async def test_failure_settled_during_slow_l2_read_is_not_recomputed():
    cache = init_response_cache(max_size=10, l2_enabled=True)
    compute = AsyncMock(side_effect=UpstreamModelError("down"))

    with patch("roibrain.core.cache.read_cached_response", new=_slow_reads(0, 0.05)):
        results = await asyncio.gather(
            cache.get_or_compute("race", compute),
            cache.get_or_compute("race", compute),
            return_exceptions=True,
        )

    assert compute.await_count == 1
    assert type(results[0]) is UpstreamModelError
    assert type(results[1]) is CachedFailureError
    assert results[1].status_code == 500


@pytest.mark.asyncio
async def test_cleanup_prunes_both_tiers():
    clock = FakeClock()
    cache = init_response_cache(
        max_size=10, ttl_seconds=60, negative_ttl_seconds=5, l2_enabled=True, clock=clock
    )
    with patch("roibrain.core.cache.read_cached_response", new=AsyncMock(return_value=None)), patch(
        "roibrain.core.cache.store_cached_response", new=AsyncMock(return_value=True)
    ):
        await cache.get_or_compute("old", AsyncMock(return_value={"ok": True}))
        await cache.drain()
    clock.now += 61

    with patch("roibrain.core.cache.purge_expired_responses", new=AsyncMock(return_value=4)):
        removed = await cache.cleanup()

    assert removed == {"l1": 1, "l2": 4}
    assert cache.metrics()["l1"]["size"] == 0


@pytest.mark.asyncio
async def test_cleanup_skips_disabled_l2(response_cache):
    with patch("roibrain.core.cache.purge_expired_responses", new=AsyncMock()) as purge:
        removed = await response_cache.cleanup()

    assert removed == {"l1": 0, "l2": 0}
    purge.assert_not_awaited()
