from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from src.modules.entitlements.enums.degraded_reason import DegradedReason
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.enums.subscription_status import SubscriptionStatus
from src.modules.entitlements.enums.tier_id import TierId
from src.modules.entitlements.models.tier import UNLIMITED

APPROACHING_LIMIT_PERCENT = 80.0
CRITICAL_PERCENT = 95.0


class FeatureEntitlement(BaseModel):
    """
    Usage and allowance of one feature within the current period.

    `used` is None when the usage store could not be read; the feature is
    then unusable with nothing remaining.
    """

    feature: Feature
    limit: int = Field(..., ge=UNLIMITED)
    used: Optional[int] = Field(None, ge=0)

    @computed_field
    @property
    def remaining(self) -> int:
        if self.limit == UNLIMITED:
            return UNLIMITED
        if self.used is None:
            return 0
        return max(0, self.limit - self.used)

    @computed_field
    @property
    def can_use(self) -> bool:
        if self.used is None:
            return False
        return self.limit == UNLIMITED or self.used < self.limit

    @computed_field
    @property
    def percentage_used(self) -> float:
        if self.limit == UNLIMITED or self.used is None:
            return 0.0
        if self.limit == 0:
            return 100.0
        return min(100.0, self.used * 100.0 / self.limit)

    @property
    def is_unlimited(self) -> bool:
        return self.limit == UNLIMITED

    @property
    def is_approaching_limit(self) -> bool:
        return self.percentage_used >= APPROACHING_LIMIT_PERCENT

    @property
    def is_critical(self) -> bool:
        return self.percentage_used >= CRITICAL_PERCENT


class Entitlement(BaseModel):
    """
    Point-in-time answer to "what can this user do right now".

    Derived on demand and never persisted.
    """

    user_id: str
    tier_id: TierId
    subscription_status: Optional[SubscriptionStatus] = None
    period_start: datetime
    period_end: datetime
    features: Dict[Feature, FeatureEntitlement] = Field(default_factory=dict)
    degraded_reasons: List[DegradedReason] = Field(default_factory=list)
    resolved_at: datetime

    @computed_field
    @property
    def degraded(self) -> bool:
        return bool(self.degraded_reasons)

    def for_feature(self, feature: Feature) -> Optional[FeatureEntitlement]:
        return self.features.get(feature)

    def days_until_reset(self, now: datetime) -> int:
        """Whole days until the period rolls over, rounded up."""
        seconds = (self.period_end - now).total_seconds()
        if seconds <= 0:
            return 0
        return int(-(-seconds // 86400))

    def __repr__(self) -> str:
        return (
            f"Entitlement(user_id={self.user_id}, tier={self.tier_id.value}, "
            f"degraded={self.degraded})"
        )
