from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from app.config import settings


APP_TIMEZONE = settings.app_timezone or "Asia/Jakarta"
APP_ZONEINFO = ZoneInfo(APP_TIMEZONE)


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(APP_ZONEINFO)

    def today(self) -> date:
        return self.now().date()

    def utcnow(self) -> datetime:
        """Naive UTC timestamp, the form every persisted column uses."""
        return self.now().astimezone(timezone.utc).replace(tzinfo=None)


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValueError("Naive datetime not allowed in business logic")
    return dt


default_time_provider = TimeProvider()
