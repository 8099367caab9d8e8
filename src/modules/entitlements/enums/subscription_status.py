from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Status of a user's subscription record, as replicated from billing.

    - ACTIVE: Paid and within its period
    - CANCELED: Canceled; access ends (lapsed records revert to free)
    - PAST_DUE: Payment failed; treated as free for limits
    - INCOMPLETE: Created but payment not confirmed
    """

    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    INCOMPLETE = "incomplete"

    @classmethod
    def _missing_(cls, value):
        if value == "cancelled":
            return cls.CANCELED
        return None

    def __repr__(self) -> str:
        return f"SubscriptionStatus.{self.name}"
