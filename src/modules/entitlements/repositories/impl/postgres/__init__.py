from .subscription_record_repository import PostgresSubscriptionRecordRepository
from .usage_event_repository import PostgresUsageEventRepository

__all__ = [
    "PostgresSubscriptionRecordRepository",
    "PostgresUsageEventRepository",
]
