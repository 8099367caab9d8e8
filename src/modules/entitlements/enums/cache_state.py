from enum import Enum


class CacheState(str, Enum):
    """Per-user entitlement cache state."""

    EMPTY = "empty"
    LOADING = "loading"
    FRESH = "fresh"
    STALE = "stale"
