from enum import Enum


class TierId(str, Enum):
    FREE = "free"
    PREMIUM = "premium"
    UNLIMITED = "unlimited"
