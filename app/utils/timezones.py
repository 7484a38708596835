from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings


def resolve_zone(name: Optional[str]) -> ZoneInfo:
    """ZoneInfo for ``name``, falling back to the configured default."""
    try:
        return ZoneInfo(name or settings.DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(settings.DEFAULT_TIMEZONE)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values (e.g. read back from SQLite) are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local(value: datetime, zone_name: Optional[str]) -> datetime:
    """Wall-clock time of ``value`` at the given zone.

    Naive input is assumed to already be wall-clock time in that zone.
    """
    zone = resolve_zone(zone_name)
    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value.astimezone(zone)


def minutes_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute
