from .subscription_record_repository import SupabaseSubscriptionRecordRepository
from .usage_event_repository import SupabaseUsageEventRepository

__all__ = [
    "SupabaseSubscriptionRecordRepository",
    "SupabaseUsageEventRepository",
]
