from src.modules.entitlements.enums.append_outcome import AppendOutcome
from src.modules.entitlements.enums.cache_state import CacheState
from src.modules.entitlements.enums.degraded_reason import DegradedReason
from src.modules.entitlements.enums.deny_reason import DenyReason
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.enums.subscription_status import SubscriptionStatus
from src.modules.entitlements.enums.tier_id import TierId

__all__ = [
    "AppendOutcome",
    "CacheState",
    "DegradedReason",
    "DenyReason",
    "Feature",
    "SubscriptionStatus",
    "TierId",
]
