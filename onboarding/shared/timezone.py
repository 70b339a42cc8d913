"""
Centralized timezone management.
All engine timestamps (completed dates, enrollment dates) go through here
so that progress records and assignments agree on "now" and "today".
"""

from datetime import date, datetime
from functools import lru_cache
from zoneinfo import ZoneInfo

from onboarding.core.setting import config


@lru_cache(maxsize=1)
def get_local_zone() -> ZoneInfo:
    """Zone configured through the TIMEZONE setting (defaults to IST)."""
    return ZoneInfo(config.TIMEZONE)


def get_local_now() -> datetime:
    """
    Get current datetime in the configured timezone.

    Returns:
        datetime: Current time (timezone-aware)

    Example:
        >>> now = get_local_now()
        >>> print(now.tzinfo)
        Asia/Kolkata
    """
    return datetime.now(tz=get_local_zone())


def get_local_today() -> date:
    """Calendar date in the configured timezone, used for due-date checks."""
    return get_local_now().date()
