from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.enums.tier_id import TierId

UNLIMITED = -1


class Tier(BaseModel):
    """
    A named plan with fixed per-feature limits per billing period.

    A limit of -1 means unlimited.
    """

    id: TierId
    name: str = Field(..., min_length=1, max_length=100)
    rank: int = Field(..., ge=0)
    price: Decimal = Field(Decimal("0"), ge=0)
    currency: str = "CAD"
    interval: Optional[str] = "month"
    limits: Dict[Feature, int]
    features: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("limits")
    @classmethod
    def validate_limits(cls, v: Dict[Feature, int]) -> Dict[Feature, int]:
        missing = [f.value for f in Feature if f not in v]
        if missing:
            raise ValueError(f"limits missing features: {', '.join(missing)}")
        for feature, limit in v.items():
            if limit < UNLIMITED:
                raise ValueError(f"limit for {feature.value} must be >= -1, got {limit}")
        return v

    def limit_for(self, feature: Feature) -> Optional[int]:
        return self.limits.get(feature)

    def is_unlimited(self, feature: Feature) -> bool:
        return self.limits.get(feature) == UNLIMITED

    def __repr__(self) -> str:
        return f"Tier(id={self.id.value}, rank={self.rank})"


class TierCatalogDocument(BaseModel):
    """Versioned tier catalog document as stored in JSON."""

    version: str = Field(..., min_length=1)
    tiers: List[Tier]

    @field_validator("tiers")
    @classmethod
    def validate_tiers(cls, v: List[Tier]) -> List[Tier]:
        ids = [t.id for t in v]
        if TierId.FREE not in ids:
            raise ValueError("catalog must define the free tier")
        if len(set(ids)) != len(ids):
            raise ValueError("catalog defines a tier more than once")
        return v
