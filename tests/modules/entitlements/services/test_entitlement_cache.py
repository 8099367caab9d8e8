import asyncio
from datetime import datetime, timezone

import pytest

from src.modules.entitlements.enums.cache_state import CacheState
from src.modules.entitlements.enums.degraded_reason import DegradedReason
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.enums.tier_id import TierId
from src.modules.entitlements.models.entitlement import Entitlement, FeatureEntitlement
from src.modules.entitlements.services.entitlement_cache import EntitlementCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeResolver:
    """Returns entitlements whose numerology usage equals the call number."""

    def __init__(self):
        self.calls = 0
        self.gates = []
        self.degraded = False

    async def resolve(self, user_id, now=None):
        self.calls += 1
        call = self.calls
        if self.gates:
            await self.gates.pop(0).wait()
        return Entitlement(
            user_id=user_id,
            tier_id=TierId.UNLIMITED,
            period_start=datetime(2024, 6, 1, tzinfo=timezone.utc),
            period_end=datetime(2024, 7, 1, tzinfo=timezone.utc),
            features={
                Feature.NUMEROLOGY: FeatureEntitlement(
                    feature=Feature.NUMEROLOGY, limit=-1, used=call
                )
            },
            degraded_reasons=[DegradedReason.USAGE_UNAVAILABLE] if self.degraded else [],
            resolved_at=datetime(2024, 6, 15, tzinfo=timezone.utc),
        )


def _call_number(entitlement):
    return entitlement.features[Feature.NUMEROLOGY].used


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def cache(resolver, clock):
    return EntitlementCache(resolver, ttl_seconds=5.0, refresh_interval_seconds=0.01, clock=clock)


async def _until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0)


class TestEntitlementCache:
    @pytest.mark.asyncio
    async def test_empty_then_fresh(self, cache, resolver):
        assert cache.state("user_1") == CacheState.EMPTY
        assert cache.peek("user_1") is None

        ent = await cache.get("user_1")

        assert _call_number(ent) == 1
        assert cache.state("user_1") == CacheState.FRESH
        assert cache.peek("user_1") is ent

        again = await cache.get("user_1")
        assert again is ent
        assert resolver.calls == 1

    @pytest.mark.asyncio
    async def test_ttl_expiry_reloads(self, cache, resolver, clock):
        await cache.get("user_1")

        clock.advance(4.9)
        assert cache.state("user_1") == CacheState.FRESH

        clock.advance(0.2)
        assert cache.state("user_1") == CacheState.STALE

        ent = await cache.get("user_1")
        assert _call_number(ent) == 2
        assert resolver.calls == 2

    @pytest.mark.asyncio
    async def test_single_flight(self, cache, resolver):
        gate = asyncio.Event()
        resolver.gates.append(gate)

        waiters = [asyncio.create_task(cache.get("user_1")) for _ in range(5)]
        await _until(lambda: resolver.calls == 1)
        assert cache.state("user_1") == CacheState.LOADING

        gate.set()
        results = await asyncio.gather(*waiters)

        assert resolver.calls == 1
        assert all(r is results[0] for r in results)
        assert cache.state("user_1") == CacheState.FRESH

    @pytest.mark.asyncio
    async def test_single_flight_is_per_user(self, cache, resolver):
        await asyncio.gather(cache.get("user_1"), cache.get("user_2"))
        assert resolver.calls == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_shared_load(self, cache, resolver):
        gate = asyncio.Event()
        resolver.gates.append(gate)

        first = asyncio.create_task(cache.get("user_1"))
        second = asyncio.create_task(cache.get("user_1"))
        await _until(lambda: resolver.calls == 1)

        first.cancel()
        gate.set()

        ent = await second
        assert _call_number(ent) == 1
        assert first.cancelled()
        assert cache.state("user_1") == CacheState.FRESH

    @pytest.mark.asyncio
    async def test_invalidate_marks_stale_and_forces_reload(self, cache, resolver):
        await cache.get("user_1")

        cache.invalidate("user_1")

        assert cache.state("user_1") == CacheState.STALE
        assert _call_number(cache.peek("user_1")) == 1
        ent = await cache.get("user_1")
        assert _call_number(ent) == 2

    @pytest.mark.asyncio
    async def test_invalidate_unknown_user_is_noop(self, cache):
        cache.invalidate("nobody")
        cache.invalidate_on_record_change("nobody")
        assert cache.state("nobody") == CacheState.EMPTY

    @pytest.mark.asyncio
    async def test_invalidate_during_loading_starts_new_load(self, cache, resolver):
        first_gate, second_gate = asyncio.Event(), asyncio.Event()
        resolver.gates.extend([first_gate, second_gate])

        old_waiter = asyncio.create_task(cache.get("user_1"))
        await _until(lambda: resolver.calls == 1)

        cache.invalidate("user_1")

        new_waiter = asyncio.create_task(cache.get("user_1"))
        await _until(lambda: resolver.calls == 2)

        # The superseded load answers its own waiter but is not stored
        first_gate.set()
        old = await old_waiter
        assert _call_number(old) == 1
        assert cache.peek("user_1") is None
        assert cache.state("user_1") == CacheState.LOADING

        second_gate.set()
        new = await new_waiter
        assert _call_number(new) == 2
        assert cache.peek("user_1") is new
        assert cache.state("user_1") == CacheState.FRESH

    @pytest.mark.asyncio
    async def test_record_change_drops_entry(self, cache, resolver):
        await cache.get("user_1")

        cache.invalidate_on_record_change("user_1")

        assert cache.state("user_1") == CacheState.EMPTY
        assert cache.peek("user_1") is None
        ent = await cache.get("user_1")
        assert _call_number(ent) == 2

    @pytest.mark.asyncio
    async def test_degraded_result_not_cached(self, cache, resolver):
        resolver.degraded = True

        first = await cache.get("user_1")
        assert first.degraded
        assert cache.peek("user_1") is None

        resolver.degraded = False
        second = await cache.get("user_1")
        assert not second.degraded
        assert resolver.calls == 2
        assert cache.state("user_1") == CacheState.FRESH

    @pytest.mark.asyncio
    async def test_degraded_result_keeps_previous_value(self, cache, resolver):
        good = await cache.get("user_1")
        resolver.degraded = True

        degraded = await cache.refresh("user_1")

        assert degraded.degraded
        assert cache.peek("user_1") is good

    @pytest.mark.asyncio
    async def test_refresh_reloads_fresh_entry(self, cache, resolver):
        await cache.get("user_1")

        ent = await cache.refresh("user_1")

        assert _call_number(ent) == 2
        assert cache.peek("user_1") is ent

    @pytest.mark.asyncio
    async def test_periodic_refresh(self, cache, resolver):
        await cache.get("user_1")

        task = cache.start_periodic_refresh("user_1")
        assert cache.start_periodic_refresh("user_1") is task

        await _until(lambda: resolver.calls >= 3, timeout=2.0)
        cache.stop_periodic_refresh("user_1")
        await asyncio.gather(task, return_exceptions=True)

        assert task.cancelled()
        assert _call_number(cache.peek("user_1")) >= 2

    @pytest.mark.asyncio
    async def test_aclose_cancels_background_work(self, cache, resolver):
        gate = asyncio.Event()
        resolver.gates.append(gate)
        refresher = cache.start_periodic_refresh("user_1", interval=60)
        loader = asyncio.create_task(cache.get("user_2"))
        await _until(lambda: resolver.calls == 1)

        await cache.aclose()

        assert refresher.cancelled()
        with pytest.raises(asyncio.CancelledError):
            await loader

    @pytest.mark.asyncio
    async def test_record_change_removes_entries(self, cache):
        for i in range(500):
            await cache.get(f"user_{i}")
            cache.invalidate_on_record_change(f"user_{i}")

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_record_change_during_loading_is_not_stored(self, cache, resolver):
        first_gate, second_gate = asyncio.Event(), asyncio.Event()
        resolver.gates.extend([first_gate, second_gate])

        old_waiter = asyncio.create_task(cache.get("user_1"))
        await _until(lambda: resolver.calls == 1)

        cache.invalidate_on_record_change("user_1")
        new_waiter = asyncio.create_task(cache.get("user_1"))
        await _until(lambda: resolver.calls == 2)

        first_gate.set()
        assert _call_number(await old_waiter) == 1
        assert cache.peek("user_1") is None

        second_gate.set()
        new = await new_waiter
        assert cache.peek("user_1") is new

    @pytest.mark.asyncio
    async def test_idle_entries_evicted_when_new_user_seen(self, cache, resolver, clock):
        await cache.get("user_1")
        await cache.get("user_2")
        assert len(cache) == 2

        clock.advance(cache.ttl_seconds + cache.idle_seconds)
        await cache.get("user_3")

        assert len(cache) == 1
        assert cache.state("user_1") == CacheState.EMPTY
        assert cache.state("user_3") == CacheState.FRESH

        ent = await cache.get("user_1")
        assert _call_number(ent) == 4

    @pytest.mark.asyncio
    async def test_recently_used_entries_survive_sweep(self, cache, clock):
        await cache.get("user_1")
        clock.advance(cache.idle_seconds)
        await cache.get("user_2")

        assert cache.evict_idle() == 0
        assert cache.state("user_1") == CacheState.STALE

    @pytest.mark.asyncio
    async def test_busy_entries_survive_sweep(self, cache, resolver, clock):
        gate = asyncio.Event()
        resolver.gates.append(gate)
        loader = asyncio.create_task(cache.get("user_1"))
        await _until(lambda: resolver.calls == 1)
        await cache.get("user_2")
        cache.start_periodic_refresh("user_2", interval=60)

        clock.advance(cache.idle_seconds * 2)

        assert cache.evict_idle() == 0
        assert len(cache) == 2

        gate.set()
        await loader
        await cache.aclose()
