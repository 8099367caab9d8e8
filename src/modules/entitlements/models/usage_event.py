from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.modules.entitlements.enums.append_outcome import AppendOutcome
from src.modules.entitlements.enums.feature import Feature


class UsageEventBase(BaseModel):
    user_id: str = Field(..., min_length=1)
    feature: Feature
    occurred_at: datetime
    idempotency_key: Optional[str] = Field(None, max_length=255)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("occurred_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class UsageEventCreate(UsageEventBase):
    pass


class UsageEvent(UsageEventBase):
    """
    One unit of a feature consumed. Append-only.
    """

    event_id: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def __repr__(self) -> str:
        return f"UsageEvent(id={self.event_id}, user_id={self.user_id}, feature={self.feature.value})"


class AppendResult(BaseModel):
    outcome: AppendOutcome
    event: Optional[UsageEvent] = None

    @property
    def duplicate(self) -> bool:
        return self.outcome == AppendOutcome.DUPLICATE
