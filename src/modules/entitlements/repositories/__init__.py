from src.modules.entitlements.repositories.interfaces import (
    ISubscriptionRecordRepository,
    IUsageEventRepository,
)

__all__ = ["ISubscriptionRecordRepository", "IUsageEventRepository"]
