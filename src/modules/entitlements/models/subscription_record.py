from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from src.modules.entitlements.enums.subscription_status import SubscriptionStatus
from src.modules.entitlements.enums.tier_id import TierId


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SubscriptionRecord(BaseModel):
    """
    Replicated billing state for one user.

    Written by the billing webhook process; read-only here. A missing record
    means free tier with no usage yet.
    """

    user_id: str
    tier_id: str = TierId.FREE.value
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> Any:
        # Unrecognized billing statuses never grant paid access
        if isinstance(v, str) and v not in {s.value for s in SubscriptionStatus} and v != "cancelled":
            return SubscriptionStatus.INCOMPLETE
        return v

    @field_validator("current_period_start", "current_period_end", "created_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    def is_lapsed(self, now: datetime) -> bool:
        return self.current_period_end is not None and self.current_period_end < now

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SubscriptionRecord":
        """
        Build a record from a database row.

        Accepts the legacy layout (subscription_type / is_premium /
        is_unlimited, starts_at / ends_at) alongside the current columns.
        """
        data = dict(row)

        if not data.get("tier_id"):
            if data.get("is_unlimited"):
                data["tier_id"] = TierId.UNLIMITED.value
            elif data.get("is_premium"):
                data["tier_id"] = TierId.PREMIUM.value
            elif data.get("subscription_type"):
                data["tier_id"] = data["subscription_type"]

        if data.get("current_period_start") is None and data.get("starts_at"):
            data["current_period_start"] = data["starts_at"]
        if data.get("current_period_end") is None and data.get("ends_at"):
            data["current_period_end"] = data["ends_at"]

        if data.get("status") is None:
            data.pop("status", None)

        fields = cls.model_fields.keys()
        return cls(**{k: v for k, v in data.items() if k in fields and v is not None})

    def __repr__(self) -> str:
        return f"SubscriptionRecord(user_id={self.user_id}, tier_id={self.tier_id}, status={self.status.value})"
