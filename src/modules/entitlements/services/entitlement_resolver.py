import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from src.core.utils import get_logger, run_blocking
from src.modules.entitlements.catalog.tier_catalog import TierCatalog
from src.modules.entitlements.enums.degraded_reason import DegradedReason
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.enums.tier_id import TierId
from src.modules.entitlements.exceptions import (
    SubscriptionUnavailableError,
    UsageUnavailableError,
)
from src.modules.entitlements.models.entitlement import Entitlement, FeatureEntitlement
from src.modules.entitlements.models.subscription_record import SubscriptionRecord
from src.modules.entitlements.models.tier import Tier
from src.modules.entitlements.repositories.interfaces import (
    ISubscriptionRecordRepository,
    IUsageEventRepository,
)
from src.modules.entitlements.services.billing_period import usage_window, utc_now

logger = get_logger(__name__)


class EntitlementResolver:
    """
    Computes a user's Entitlement from the subscription record, the usage log
    and the tier catalog.

    Never raises for store failures: an unreachable subscription store
    degrades to free-tier defaults, an unreachable usage store marks every
    feature unusable. Both are flagged on the result.
    """

    def __init__(
        self,
        subscription_repository: ISubscriptionRecordRepository,
        usage_repository: IUsageEventRepository,
        catalog: TierCatalog,
        store_timeout: float = 3.0,
    ):
        self.subscription_repository = subscription_repository
        self.usage_repository = usage_repository
        self.catalog = catalog
        self.store_timeout = store_timeout

    async def _call_store(self, func, *args):
        return await run_blocking(func, *args, timeout=self.store_timeout)

    async def _fetch_record(self, user_id: str) -> Optional[SubscriptionRecord]:
        try:
            return await self._call_store(
                self.subscription_repository.get_active_record, user_id
            )
        except asyncio.TimeoutError as e:
            raise SubscriptionUnavailableError(
                f"Subscription store timed out after {self.store_timeout}s"
            ) from e
        except Exception as e:
            raise SubscriptionUnavailableError(str(e)) from e

    async def _count_usage(
        self, user_id: str, features: List[Feature], start: datetime, end: datetime
    ) -> Dict[Feature, int]:
        try:
            counts = await asyncio.gather(
                *(
                    self._call_store(
                        self.usage_repository.count_in_window, user_id, feature, start, end
                    )
                    for feature in features
                )
            )
        except asyncio.TimeoutError as e:
            raise UsageUnavailableError(
                f"Usage store timed out after {self.store_timeout}s"
            ) from e
        except Exception as e:
            raise UsageUnavailableError(str(e)) from e
        return dict(zip(features, counts))

    def _effective_tier(
        self, record: Optional[SubscriptionRecord], now: datetime
    ) -> Tuple[Tier, bool]:
        """Tier whose limits apply, and whether the record is in force."""
        if record is None:
            return self.catalog.get_tier(TierId.FREE), False
        if not record.is_active() or record.is_lapsed(now):
            logger.debug(
                "subscription_not_in_force",
                user_id=record.user_id,
                status=record.status.value,
                period_end=str(record.current_period_end),
            )
            return self.catalog.get_tier(TierId.FREE), False
        return self.catalog.get_tier(record.tier_id), True

    async def resolve(self, user_id: str, now: Optional[datetime] = None) -> Entitlement:
        now = now or utc_now()
        degraded: List[DegradedReason] = []

        try:
            record = await self._fetch_record(user_id)
        except SubscriptionUnavailableError as e:
            logger.warning("subscription_store_unavailable", user_id=user_id, error=str(e))
            degraded.append(DegradedReason.SUBSCRIPTION_UNAVAILABLE)
            record = None

        tier, in_force = self._effective_tier(record, now)
        start, end = usage_window(record if in_force else None, now)
        features = list(tier.limits.keys())

        try:
            counts: Dict[Feature, Optional[int]] = await self._count_usage(
                user_id, features, start, end
            )
        except UsageUnavailableError as e:
            logger.warning("usage_store_unavailable", user_id=user_id, error=str(e))
            degraded.append(DegradedReason.USAGE_UNAVAILABLE)
            counts = {feature: None for feature in features}

        entitlement = Entitlement(
            user_id=user_id,
            tier_id=tier.id,
            subscription_status=record.status if record else None,
            period_start=start,
            period_end=end,
            features={
                feature: FeatureEntitlement(
                    feature=feature, limit=tier.limits[feature], used=counts[feature]
                )
                for feature in features
            },
            degraded_reasons=degraded,
            resolved_at=now,
        )
        logger.debug(
            "entitlement_resolved",
            user_id=user_id,
            tier_id=tier.id.value,
            degraded=entitlement.degraded,
        )
        return entitlement
