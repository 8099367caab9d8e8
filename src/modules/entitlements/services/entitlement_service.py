from typing import Any, Dict, List, Optional

from src.core.utils import get_logger
from src.modules.entitlements.catalog.tier_catalog import TierCatalog
from src.modules.entitlements.enums.deny_reason import DenyReason
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.models.access_decision import AccessDecision, UseFeatureResult
from src.modules.entitlements.models.entitlement import Entitlement
from src.modules.entitlements.models.tier import UNLIMITED, Tier
from src.modules.entitlements.services.access_gate import AccessGate
from src.modules.entitlements.services.entitlement_cache import EntitlementCache
from src.modules.entitlements.services.usage_recorder import UsageRecorder

logger = get_logger(__name__)


class EntitlementService:
    """
    Consumer-facing entry point: check access, use a feature, read the usage
    summary, and react to subscription changes.
    """

    def __init__(
        self,
        cache: EntitlementCache,
        gate: AccessGate,
        recorder: UsageRecorder,
        catalog: TierCatalog,
    ):
        self.cache = cache
        self.gate = gate
        self.recorder = recorder
        self.catalog = catalog

    async def check_access(self, user_id: str, feature: Feature) -> AccessDecision:
        entitlement = await self.cache.get(user_id)
        return self.gate.check(entitlement, feature)

    async def use_feature(
        self,
        user_id: str,
        feature: Feature,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> UseFeatureResult:
        """
        Gate then record one use of `feature`.

        A tracking failure after an allowed check still reports allowed=True
        with recorded=False; the action itself is not rolled back.
        """
        decision = await self.check_access(user_id, feature)
        if (
            not decision.allowed
            and decision.reason == DenyReason.QUOTA_EXCEEDED
            and idempotency_key is not None
        ):
            # A retry of the request that used the last unit is a replay, not a new use
            existing = await self.recorder.find_recorded(user_id, feature, idempotency_key)
            if existing is not None:
                logger.info(
                    "usage_replayed",
                    user_id=user_id,
                    feature=feature.value,
                    idempotency_key=idempotency_key,
                    event_id=existing.event_id,
                )
                return UseFeatureResult(
                    allowed=True,
                    recorded=True,
                    remaining=decision.remaining,
                    duplicate=True,
                    decision=decision,
                )

        if not decision.allowed:
            logger.info(
                "feature_access_denied",
                user_id=user_id,
                feature=feature.value,
                reason=decision.reason.value if decision.reason else None,
            )
            return UseFeatureResult(
                allowed=False,
                recorded=False,
                remaining=decision.remaining,
                decision=decision,
            )

        result = await self.recorder.record(
            user_id, feature, idempotency_key=idempotency_key, metadata=metadata
        )
        if not result.success:
            return UseFeatureResult(
                allowed=True,
                recorded=False,
                remaining=decision.remaining,
                decision=decision,
                tracking_error=result.error,
            )

        self.cache.invalidate(user_id)

        remaining = decision.remaining
        if remaining != UNLIMITED and not result.duplicate:
            remaining = max(0, remaining - 1)

        return UseFeatureResult(
            allowed=True,
            recorded=True,
            remaining=remaining,
            duplicate=result.duplicate,
            decision=decision,
        )

    async def get_entitlement(self, user_id: str) -> Entitlement:
        return await self.cache.get(user_id)

    def notify_subscription_changed(self, user_id: str) -> None:
        logger.info("subscription_changed", user_id=user_id)
        self.cache.invalidate_on_record_change(user_id)

    def list_tiers(self) -> List[Tier]:
        return self.catalog.all_tiers()
