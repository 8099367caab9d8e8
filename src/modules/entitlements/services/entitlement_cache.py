"""
Per-user entitlement cache.

State per user: Empty -> Loading -> Fresh -> Stale -> Loading -> Fresh ...

At most one resolver call per user is in flight; concurrent callers share
it. Invalidation bumps a per-user generation so that a load started before
the invalidation still answers its own waiters but never stores its result.

Entries idle for `idle_seconds` past their TTL are evicted on a sweep that
runs at most once per `idle_seconds`, when a new user is seen.
"""

import asyncio
import time
from typing import Callable, Dict, Optional

from src.core.utils import get_logger
from src.modules.entitlements.enums.cache_state import CacheState
from src.modules.entitlements.models.entitlement import Entitlement
from src.modules.entitlements.services.entitlement_resolver import EntitlementResolver

logger = get_logger(__name__)


class _CacheEntry:
    __slots__ = ("value", "fresh_until", "stale", "generation", "inflight")

    def __init__(self):
        self.value: Optional[Entitlement] = None
        self.fresh_until: float = 0.0
        self.stale: bool = False
        self.generation: int = 0
        self.inflight: Optional[asyncio.Task] = None


class EntitlementCache:
    def __init__(
        self,
        resolver: EntitlementResolver,
        ttl_seconds: float = 5.0,
        refresh_interval_seconds: float = 30.0,
        idle_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.resolver = resolver
        self.ttl_seconds = ttl_seconds
        self.refresh_interval_seconds = refresh_interval_seconds
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._next_sweep_at = clock() + idle_seconds
        self._entries: Dict[str, _CacheEntry] = {}
        self._refreshers: Dict[str, asyncio.Task] = {}

    def _entry(self, user_id: str) -> _CacheEntry:
        entry = self._entries.get(user_id)
        if entry is None:
            if self._clock() >= self._next_sweep_at:
                self.evict_idle()
            entry = _CacheEntry()
            self._entries[user_id] = entry
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def _is_busy(self, user_id: str, entry: _CacheEntry) -> bool:
        if entry.inflight is not None and not entry.inflight.done():
            return True
        refresher = self._refreshers.get(user_id)
        return refresher is not None and not refresher.done()

    def evict_idle(self) -> int:
        """Drop entries unused for `idle_seconds` past their TTL. Returns the count."""
        now = self._clock()
        self._next_sweep_at = now + self.idle_seconds
        idle = [
            user_id
            for user_id, entry in self._entries.items()
            if now >= entry.fresh_until + self.idle_seconds
            and not self._is_busy(user_id, entry)
        ]
        for user_id in idle:
            del self._entries[user_id]
        if idle:
            logger.debug("entitlement_cache_evicted", count=len(idle), remaining=len(self._entries))
        return len(idle)

    def _is_fresh(self, entry: _CacheEntry) -> bool:
        return (
            entry.value is not None
            and not entry.stale
            and self._clock() < entry.fresh_until
        )

    def state(self, user_id: str) -> CacheState:
        entry = self._entries.get(user_id)
        if entry is None:
            return CacheState.EMPTY
        if entry.inflight is not None and not entry.inflight.done():
            return CacheState.LOADING
        if entry.value is None:
            return CacheState.EMPTY
        if self._is_fresh(entry):
            return CacheState.FRESH
        return CacheState.STALE

    def peek(self, user_id: str) -> Optional[Entitlement]:
        """Last stored entitlement, even if stale. Never loads."""
        entry = self._entries.get(user_id)
        return entry.value if entry else None

    async def get(self, user_id: str) -> Entitlement:
        entry = self._entry(user_id)
        if self._is_fresh(entry):
            return entry.value
        return await self._load(user_id)

    async def refresh(self, user_id: str) -> Entitlement:
        """Reload regardless of freshness, joining a current load if any."""
        return await self._load(user_id)

    def invalidate(self, user_id: str) -> None:
        """Mark the entry stale. Called after a usage event is recorded."""
        entry = self._entries.get(user_id)
        if entry is None:
            return
        entry.stale = True
        self._detach_inflight(entry)
        logger.debug("entitlement_invalidated", user_id=user_id, generation=entry.generation)

    def invalidate_on_record_change(self, user_id: str) -> None:
        """Drop the entry entirely. Called when the subscription record changes."""
        entry = self._entries.pop(user_id, None)
        if entry is None:
            return
        self._detach_inflight(entry)
        logger.info("entitlement_dropped", user_id=user_id, generation=entry.generation)

    def _detach_inflight(self, entry: _CacheEntry) -> None:
        # The old task keeps serving its waiters; new callers start over
        entry.generation += 1
        entry.inflight = None

    async def _load(self, user_id: str) -> Entitlement:
        entry = self._entry(user_id)
        task = entry.inflight
        if task is None or task.done():
            task = asyncio.create_task(
                self._resolve_and_store(user_id, entry, entry.generation)
            )
            entry.inflight = task
            task.add_done_callback(lambda t: self._clear_inflight(user_id, t))
        return await asyncio.shield(task)

    def _clear_inflight(self, user_id: str, task: asyncio.Task) -> None:
        entry = self._entries.get(user_id)
        if entry is not None and entry.inflight is task:
            entry.inflight = None

    async def _resolve_and_store(
        self, user_id: str, entry: _CacheEntry, generation: int
    ) -> Entitlement:
        entitlement = await self.resolver.resolve(user_id)

        if self._entries.get(user_id) is not entry or entry.generation != generation:
            logger.debug("entitlement_load_superseded", user_id=user_id, generation=generation)
            return entitlement
        if entitlement.degraded:
            logger.debug(
                "entitlement_not_cached",
                user_id=user_id,
                degraded_reasons=[r.value for r in entitlement.degraded_reasons],
            )
            return entitlement

        entry.value = entitlement
        entry.stale = False
        entry.fresh_until = self._clock() + self.ttl_seconds
        return entitlement

    def start_periodic_refresh(self, user_id: str, interval: Optional[float] = None) -> asyncio.Task:
        """Refresh the user's entitlement in the background every `interval` seconds."""
        task = self._refreshers.get(user_id)
        if task is not None and not task.done():
            return task
        task = asyncio.create_task(
            self._refresh_loop(user_id, interval or self.refresh_interval_seconds)
        )
        self._refreshers[user_id] = task
        logger.info("periodic_refresh_started", user_id=user_id)
        return task

    def stop_periodic_refresh(self, user_id: str) -> None:
        task = self._refreshers.pop(user_id, None)
        if task is not None:
            task.cancel()
            logger.info("periodic_refresh_stopped", user_id=user_id)

    async def _refresh_loop(self, user_id: str, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh(user_id)
            except Exception as e:
                logger.warning("periodic_refresh_failed", user_id=user_id, error=str(e))

    async def aclose(self) -> None:
        tasks = list(self._refreshers.values())
        self._refreshers.clear()
        tasks.extend(
            e.inflight for e in self._entries.values() if e.inflight is not None
        )
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
