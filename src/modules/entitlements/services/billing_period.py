from datetime import datetime, timezone
from typing import Optional, Tuple

from src.modules.entitlements.models.subscription_record import SubscriptionRecord


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def calendar_month_window(now: datetime) -> Tuple[datetime, datetime]:
    """[first of month, first of next month) in UTC."""
    now = now.astimezone(timezone.utc)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def usage_window(record: Optional[SubscriptionRecord], now: datetime) -> Tuple[datetime, datetime]:
    """
    Window in which usage counts against the limits.

    The record's own period when it is active, not lapsed and has both
    bounds; otherwise the calendar month.
    """
    if (
        record is not None
        and record.is_active()
        and not record.is_lapsed(now)
        and record.current_period_start is not None
        and record.current_period_end is not None
    ):
        return record.current_period_start, record.current_period_end
    return calendar_month_window(now)
