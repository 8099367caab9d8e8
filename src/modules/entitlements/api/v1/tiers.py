from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from dependency_injector.wiring import inject, Provide

from src.core.di.container import Container
from src.modules.entitlements.catalog.tier_catalog import TierCatalog
from src.modules.entitlements.models.tier import Tier

router = APIRouter(prefix="/tiers", tags=["Tiers"])


class TierCatalogResponse(BaseModel):
    version: str
    tiers: List[Tier]


@router.get("", response_model=TierCatalogResponse)
@inject
def list_tiers(
    catalog: TierCatalog = Depends(Provide[Container.entitlements.tier_catalog]),
):
    return TierCatalogResponse(version=catalog.version, tiers=catalog.all_tiers())
