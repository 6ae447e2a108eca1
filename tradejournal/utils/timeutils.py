"""Epoch-millisecond helpers and local-day arithmetic."""

import time
from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo


def now_ms() -> int:
    return int(time.time() * 1000)


def resolve_tz(name: str | None) -> tzinfo | None:
    """Return the configured zone, or None for the host's local time."""
    if not name:
        return None
    return ZoneInfo(name)


def to_local(ts_ms: int, tz: tzinfo | None = None) -> datetime:
    dt = datetime.fromtimestamp(ts_ms / 1000, tz=tz)
    return dt if tz is not None else dt.astimezone()


def local_date(ts_ms: int, tz: tzinfo | None = None) -> date:
    return to_local(ts_ms, tz).date()


def local_hour(ts_ms: int, tz: tzinfo | None = None) -> int:
    return to_local(ts_ms, tz).hour
