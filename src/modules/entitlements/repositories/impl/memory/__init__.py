from .subscription_record_repository import InMemorySubscriptionRecordRepository
from .usage_event_repository import InMemoryUsageEventRepository

__all__ = [
    "InMemorySubscriptionRecordRepository",
    "InMemoryUsageEventRepository",
]
