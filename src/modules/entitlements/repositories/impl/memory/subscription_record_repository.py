import threading
from typing import Any, Dict, List, Optional

from src.modules.entitlements.models.subscription_record import SubscriptionRecord
from src.modules.entitlements.repositories.interfaces import ISubscriptionRecordRepository


class InMemorySubscriptionRecordRepository(ISubscriptionRecordRepository):
    """
    Process-local subscription store for local runs and tests.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: List[SubscriptionRecord] = []

    def save(self, record: SubscriptionRecord) -> SubscriptionRecord:
        with self._lock:
            self._records.append(record)
        return record

    def get_active_record(self, user_id: str) -> Optional[SubscriptionRecord]:
        with self._lock:
            matches = [r for r in self._records if r.user_id == user_id]
        # Latest insert wins when created_at ties or is missing
        return matches[-1] if matches else None

    def find_by(
        self,
        filters: Dict[str, Any],
        limit: int = 100,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[SubscriptionRecord]:
        with self._lock:
            rows = [
                r for r in self._records
                if all(getattr(r, k, None) == v for k, v in filters.items())
            ]
        if order_by:
            rows.sort(key=lambda r: getattr(r, order_by), reverse=descending)
        return rows[:limit]
