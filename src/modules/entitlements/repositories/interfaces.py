from abc import abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from src.core.database.interface import IRepository
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.models.subscription_record import SubscriptionRecord
from src.modules.entitlements.models.usage_event import AppendResult, UsageEvent


class ISubscriptionRecordRepository(IRepository[SubscriptionRecord]):
    @abstractmethod
    def get_active_record(self, user_id: str) -> Optional[SubscriptionRecord]:
        """
        Most recent subscription record for the user, or None.

        Whether the record is still active is judged by the caller.

        Raises:
            EntitlementsRepositoryError: On infrastructure failure.
        """
        pass


class IUsageEventRepository(IRepository[UsageEvent]):
    @abstractmethod
    def count_in_window(
        self, user_id: str, feature: Feature, start: datetime, end: datetime
    ) -> int:
        """
        Number of events for (user, feature) with start <= occurred_at < end.

        Raises:
            EntitlementsRepositoryError: On infrastructure failure.
        """
        pass

    @abstractmethod
    def append(
        self,
        user_id: str,
        feature: Feature,
        occurred_at: datetime,
        idempotency_key: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AppendResult:
        """
        Append one usage event.

        Returns a DUPLICATE outcome when an event with the same
        (user_id, feature, idempotency_key) already exists.

        Raises:
            EntitlementsRepositoryError: On infrastructure failure.
        """
        pass

    @abstractmethod
    def find_by_idempotency_key(
        self, user_id: str, feature: Feature, idempotency_key: str
    ) -> Optional[UsageEvent]:
        """
        The event already recorded under (user_id, feature, idempotency_key), or None.

        Raises:
            EntitlementsRepositoryError: On infrastructure failure.
        """
        pass
