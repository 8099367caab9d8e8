from fastapi import APIRouter

from src.modules.entitlements.api.v1 import entitlements, tiers

router = APIRouter()

router.include_router(entitlements.router)
router.include_router(tiers.router)
