from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, status
from pydantic import BaseModel, Field
from dependency_injector.wiring import inject, Provide

from src.core.di.container import Container
from src.core.security import require_internal_api_key
from src.modules.entitlements.enums.feature import Feature
from src.modules.entitlements.models.access_decision import AccessDecision, UseFeatureResult
from src.modules.entitlements.models.entitlement import Entitlement
from src.modules.entitlements.services.entitlement_service import EntitlementService

router = APIRouter(prefix="/users/{user_id}", tags=["Entitlements"])


class UseFeatureRequest(BaseModel):
    metadata: Dict[str, Any] = Field(default_factory=dict)
    idempotency_key: Optional[str] = Field(None, max_length=255)


class SubscriptionChangedResponse(BaseModel):
    user_id: str
    invalidated: bool = True


@router.get("/entitlement", response_model=Entitlement)
@inject
async def get_entitlement(
    user_id: str,
    service: EntitlementService = Depends(Provide[Container.entitlements.entitlement_service]),
):
    return await service.get_entitlement(user_id)


@router.get("/access/{feature}", response_model=AccessDecision)
@inject
async def check_access(
    user_id: str,
    feature: Feature,
    service: EntitlementService = Depends(Provide[Container.entitlements.entitlement_service]),
):
    return await service.check_access(user_id, feature)


@router.post("/usage/{feature}", response_model=UseFeatureResult)
@inject
async def use_feature(
    user_id: str,
    feature: Feature,
    req: Optional[UseFeatureRequest] = None,
    idempotency_key_header: Optional[str] = Header(None, alias="Idempotency-Key"),
    service: EntitlementService = Depends(Provide[Container.entitlements.entitlement_service]),
):
    """
    Gate and record one use of a feature.

    Always 200: denials and tracking failures are reported in the body.
    The body's idempotency_key wins over the Idempotency-Key header.
    """
    req = req or UseFeatureRequest()
    return await service.use_feature(
        user_id,
        feature,
        metadata=req.metadata,
        idempotency_key=req.idempotency_key or idempotency_key_header,
    )


@router.post(
    "/subscription-changed",
    response_model=SubscriptionChangedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_internal_api_key)],
)
@inject
async def subscription_changed(
    user_id: str,
    service: EntitlementService = Depends(Provide[Container.entitlements.entitlement_service]),
):
    service.notify_subscription_changed(user_id)
    return SubscriptionChangedResponse(user_id=user_id)
