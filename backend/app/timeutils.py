"""Timezone helpers — everything is stored and compared in UTC."""
from datetime import datetime, timezone
from typing import Optional

import pytz

from app.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime; naive values are taken to be UTC already.

    SQLite hands back naive values and compares stored wall-clock strings,
    so every bound used in a query goes through here first.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_local_day(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> datetime:
    """Midnight of the current day in the report timezone, expressed in UTC."""
    tz = pytz.timezone(tz_name or settings.REPORT_TIMEZONE)
    local_now = (as_utc(now) or utcnow()).astimezone(tz)
    midnight = tz.localize(datetime(local_now.year, local_now.month, local_now.day))
    return midnight.astimezone(timezone.utc)
