from typing import Optional

from src.modules.entitlements.catalog.tier_catalog import TierCatalog
from src.modules.entitlements.enums.degraded_reason import DegradedReason
from src.modules.entitlements.enums.deny_reason import DenyReason
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.models.access_decision import AccessDecision
from src.modules.entitlements.models.entitlement import Entitlement

DEGRADED_MESSAGE = "We couldn't verify your plan right now. Please try again."


def quota_message(feature: Feature, limit: int, upgrade_name: Optional[str]) -> str:
    if upgrade_name:
        return (
            f"You've reached your monthly limit of {limit} {feature.display_name}. "
            f"Upgrade to {upgrade_name} for more!"
        )
    return f"Your plan doesn't include more {feature.display_name} this month."


def check_access(
    entitlement: Entitlement,
    feature: Feature,
    catalog: Optional[TierCatalog] = None,
    allow_degraded_subscription: bool = False,
) -> AccessDecision:
    """
    Decide whether `feature` may be used under `entitlement`.

    Pure: no I/O, no clock. Rules apply in order: feature not in tier,
    degraded, quota exceeded, allow.
    """
    fe = entitlement.for_feature(feature)
    if fe is None:
        return AccessDecision(
            allowed=False,
            remaining=0,
            reason=DenyReason.FEATURE_NOT_IN_TIER,
            feature=feature,
            tier_id=entitlement.tier_id,
            degraded=entitlement.degraded,
            message=f"Your plan doesn't include {feature.display_name}.",
        )

    subscription_only = entitlement.degraded_reasons == [
        DegradedReason.SUBSCRIPTION_UNAVAILABLE
    ]
    if entitlement.degraded and not (allow_degraded_subscription and subscription_only):
        return AccessDecision(
            allowed=False,
            remaining=0,
            reason=DenyReason.DEGRADED,
            feature=feature,
            tier_id=entitlement.tier_id,
            limit=fe.limit,
            used=fe.used,
            degraded=True,
            message=DEGRADED_MESSAGE,
        )

    if not fe.can_use:
        upgrade = catalog.suggest_upgrade(entitlement.tier_id, feature) if catalog else None
        return AccessDecision(
            allowed=False,
            remaining=0,
            reason=DenyReason.QUOTA_EXCEEDED,
            feature=feature,
            tier_id=entitlement.tier_id,
            limit=fe.limit,
            used=fe.used,
            degraded=entitlement.degraded,
            upgrade_tier=upgrade.id if upgrade else None,
            message=quota_message(feature, fe.limit, upgrade.name if upgrade else None),
        )

    return AccessDecision(
        allowed=True,
        remaining=fe.remaining,
        feature=feature,
        tier_id=entitlement.tier_id,
        limit=fe.limit,
        used=fe.used,
        degraded=entitlement.degraded,
    )


class AccessGate:
    """Binds the catalog and degraded-mode policy to check_access."""

    def __init__(self, catalog: TierCatalog, allow_degraded_subscription: bool = False):
        self.catalog = catalog
        self.allow_degraded_subscription = allow_degraded_subscription

    def check(self, entitlement: Entitlement, feature: Feature) -> AccessDecision:
        return check_access(
            entitlement,
            feature,
            catalog=self.catalog,
            allow_degraded_subscription=self.allow_degraded_subscription,
        )
