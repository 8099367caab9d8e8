from enum import Enum


class DegradedReason(str, Enum):
    SUBSCRIPTION_UNAVAILABLE = "subscription_unavailable"
    USAGE_UNAVAILABLE = "usage_unavailable"
