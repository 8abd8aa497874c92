"""Business-day helpers.

Timestamps are stored as naive UTC (``datetime.utcnow``); calendar days
(work plans, report buckets) are expressed in the shop's timezone.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from boutique.core.config import settings
from boutique.core.errors import ValidationError


def business_zone(name: str | None = None) -> ZoneInfo:
    try:
        return ZoneInfo(name or settings.business_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {name}") from exc


def business_today(tz: ZoneInfo | None = None) -> date:
    return datetime.now(tz or business_zone()).date()


def local_day_start_utc(day: date, tz: ZoneInfo) -> datetime:
    local_midnight = datetime.combine(day, time.min, tzinfo=tz)
    return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)


def local_day_range_utc(date_from: date, date_to: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Half-open UTC range covering every local day from ``date_from`` to ``date_to``."""
    return local_day_start_utc(date_from, tz), local_day_start_utc(date_to + timedelta(days=1), tz)


def to_local(value: datetime, tz: ZoneInfo) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)
