import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from src.modules.entitlements.enums.append_outcome import AppendOutcome
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.models.usage_event import AppendResult, UsageEvent
from src.modules.entitlements.repositories.interfaces import IUsageEventRepository


class InMemoryUsageEventRepository(IUsageEventRepository):
    """
    Process-local append-only usage log.

    The idempotency index is checked and updated under the same lock as the
    append, which gives the same guarantee as the store's unique constraint.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._events: List[UsageEvent] = []
        self._keys: Dict[Tuple[str, Feature, str], UsageEvent] = {}

    def count_in_window(
        self, user_id: str, feature: Feature, start: datetime, end: datetime
    ) -> int:
        with self._lock:
            return sum(
                1
                for e in self._events
                if e.user_id == user_id
                and e.feature == feature
                and start <= e.occurred_at < end
            )

    def append(
        self,
        user_id: str,
        feature: Feature,
        occurred_at: datetime,
        idempotency_key: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AppendResult:
        with self._lock:
            if idempotency_key is not None:
                key = (user_id, feature, idempotency_key)
                if key in self._keys:
                    return AppendResult(outcome=AppendOutcome.DUPLICATE)

            event = UsageEvent(
                event_id=str(uuid.uuid4()),
                user_id=user_id,
                feature=feature,
                occurred_at=occurred_at,
                idempotency_key=idempotency_key,
                metadata=metadata or {},
                created_at=datetime.now(timezone.utc),
            )
            self._events.append(event)
            if idempotency_key is not None:
                self._keys[(user_id, feature, idempotency_key)] = event
        return AppendResult(outcome=AppendOutcome.INSERTED, event=event)

    def find_by_idempotency_key(
        self, user_id: str, feature: Feature, idempotency_key: str
    ) -> Optional[UsageEvent]:
        with self._lock:
            return self._keys.get((user_id, feature, idempotency_key))

    def find_by(
        self,
        filters: Dict[str, Any],
        limit: int = 100,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[UsageEvent]:
        with self._lock:
            rows = [
                e for e in self._events
                if all(getattr(e, k, None) == v for k, v in filters.items())
            ]
        if order_by:
            rows.sort(key=lambda e: getattr(e, order_by), reverse=descending)
        return rows[:limit]
