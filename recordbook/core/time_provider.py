from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from recordbook.config import settings


APP_TIMEZONE = settings.app_timezone or 'Asia/Seoul'
APP_ZONEINFO = ZoneInfo(APP_TIMEZONE)


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(APP_ZONEINFO)

    def naive_now(self) -> datetime:
        """Current instant as naive UTC, the form every DateTime column stores."""
        return to_naive_utc(self.now())


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValueError("Naive datetime not allowed in business logic")
    return dt


def to_naive_utc(dt: datetime) -> datetime:
    # UTC has no DST fold, so stored timestamps order the same way as instants.
    return ensure_aware(dt).astimezone(timezone.utc).replace(tzinfo=None)


default_time_provider = TimeProvider()
