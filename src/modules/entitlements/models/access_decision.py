from typing import Optional

from pydantic import BaseModel

from src.modules.entitlements.enums.deny_reason import DenyReason
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.enums.tier_id import TierId
from src.modules.entitlements.models.usage_event import UsageEvent


class AccessDecision(BaseModel):
    allowed: bool
    remaining: int
    reason: Optional[DenyReason] = None
    feature: Feature
    tier_id: TierId
    limit: Optional[int] = None
    used: Optional[int] = None
    degraded: bool = False
    upgrade_tier: Optional[TierId] = None
    message: Optional[str] = None


class RecordResult(BaseModel):
    """Outcome of a usage recording attempt. Never raised, always returned."""

    success: bool
    duplicate: bool = False
    event: Optional[UsageEvent] = None
    error: Optional[str] = None


class UseFeatureResult(BaseModel):
    """
    Result of a gated action.

    allowed=True with recorded=False means the action went ahead but usage
    tracking failed.
    """

    allowed: bool
    recorded: bool
    remaining: int
    duplicate: bool = False
    decision: AccessDecision
    tracking_error: Optional[str] = None
