from src.modules.entitlements.services.access_gate import AccessGate, check_access
from src.modules.entitlements.services.entitlement_cache import EntitlementCache
from src.modules.entitlements.services.entitlement_resolver import EntitlementResolver
from src.modules.entitlements.services.entitlement_service import EntitlementService
from src.modules.entitlements.services.usage_recorder import UsageRecorder

__all__ = [
    "AccessGate",
    "EntitlementCache",
    "EntitlementResolver",
    "EntitlementService",
    "UsageRecorder",
    "check_access",
]
