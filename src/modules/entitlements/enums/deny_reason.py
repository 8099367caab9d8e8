from enum import Enum


class DenyReason(str, Enum):
    """
    Why a gated action was denied.

    QUOTA_EXCEEDED is user-actionable (upgrade). DEGRADED means we could not
    verify the plan or usage and the caller should retry.
    FEATURE_NOT_IN_TIER is reserved for features a tier does not carry at all.
    """

    QUOTA_EXCEEDED = "quota_exceeded"
    FEATURE_NOT_IN_TIER = "feature_not_in_tier"
    DEGRADED = "degraded"
