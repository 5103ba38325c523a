"""Time helpers that honour the configured workspace timezone."""
from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from opsdesk.core.config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_today(tz_name: str | None = None) -> date:
    """Calendar date "today" in the workspace timezone (no time-of-day component)."""
    return datetime.now(ZoneInfo(tz_name or settings.timezone)).date()


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps (SQLite round-trips) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
