"""
Daily Lookup Quota

Static daily quota reported with every bulk response:
- fixed daily limit (DAILY_LOOKUP_LIMIT)
- remaining = limit - records processed in this request
- resets at the next local midnight in RATE_LIMIT_TIMEZONE
"""
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.schemas.bulk import RateLimitInfo


def get_timezone(name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(name or settings.RATE_LIMIT_TIMEZONE)


def get_next_midnight(tz: ZoneInfo, now: Optional[datetime] = None) -> datetime:
    """Get the next midnight in the given timezone."""
    now = now.astimezone(tz) if now else datetime.now(tz)
    tomorrow = now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, datetime.min.time(), tzinfo=tz)


def build_rate_limit_info(
    processed: int,
    limit: Optional[int] = None,
    timezone_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RateLimitInfo:
    daily_limit = settings.DAILY_LOOKUP_LIMIT if limit is None else limit
    midnight = get_next_midnight(get_timezone(timezone_name), now)
    return RateLimitInfo(
        dailyLimit=daily_limit,
        remainingToday=max(0, daily_limit - processed),
        resetTime=midnight.isoformat(),
    )
