"""Period keys and period windows.

Keys:
- daily: ``2025-12-24``
- weekly: ``2025-W52`` (weeks start on Monday; week 01 holds 1 January and
  every week is clipped to its calendar year)
- monthly: ``2025-12``
- alltime: ``alltime``

All windows are cut in ``settings.RANKINGS_TIMEZONE``; returned datetimes
are timezone-aware UTC.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from geoboard.core.config import settings
from geoboard.services.errors import InvalidInputError

PERIODS = ("daily", "weekly", "monthly", "alltime")
ALLTIME_KEY = "alltime"


def _tz() -> ZoneInfo:
    return ZoneInfo(settings.RANKINGS_TIMEZONE)


def as_utc(ts: datetime) -> datetime:
    # SQLite hands timestamps back naive; they are stored as UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _local(ts: datetime) -> datetime:
    return as_utc(ts).astimezone(_tz())


def validate_period(period: str) -> str:
    if period not in PERIODS:
        raise InvalidInputError(f"period must be one of {'|'.join(PERIODS)}")
    return period


def _week_number(day: date) -> int:
    jan1 = date(day.year, 1, 1)
    return (day.timetuple().tm_yday - 1 + jan1.weekday()) // 7 + 1


def period_key(period: str, ts: datetime) -> str:
    validate_period(period)
    if period == "alltime":
        return ALLTIME_KEY

    day = _local(ts).date()
    if period == "daily":
        return day.isoformat()
    if period == "monthly":
        return f"{day.year:04d}-{day.month:02d}"
    return f"{day.year:04d}-W{_week_number(day):02d}"


def current_period_keys(ts: datetime) -> dict[str, str]:
    return {p: period_key(p, ts) for p in PERIODS}


def _midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=_tz()).astimezone(timezone.utc)


def _parse_key(period: str, key: str) -> tuple[date, date]:
    try:
        if period == "daily":
            start = date.fromisoformat(key)
            return start, start + timedelta(days=1)
        if period == "monthly":
            year, month = (int(x) for x in key.split("-"))
            start = date(year, month, 1)
            end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
            return start, end
        year_str, week_str = key.split("-W")
        year, week = int(year_str), int(week_str)
    except ValueError:
        raise InvalidInputError(f"invalid {period} period key: {key!r}")

    jan1 = date(year, 1, 1)
    next_jan1 = date(year + 1, 1, 1)
    first_monday = jan1 - timedelta(days=jan1.weekday())
    start = first_monday + timedelta(weeks=week - 1)
    end = start + timedelta(weeks=1)
    start, end = max(start, jan1), min(end, next_jan1)
    if week < 1 or start >= end:
        raise InvalidInputError(f"invalid weekly period key: {key!r}")
    return start, end


def period_window(period: str, key: str) -> tuple[datetime | None, datetime | None]:
    """Half-open ``[start, end)`` window covered by ``key``; alltime is unbounded."""
    validate_period(period)
    if period == "alltime":
        return None, None
    start, end = _parse_key(period, key)
    return _midnight(start), _midnight(end)


def period_start(period: str | None, now: datetime) -> datetime | None:
    """Start of the window that contains ``now``; ``None`` means no lower bound."""
    if period is None or period == "alltime":
        return None
    start, _ = period_window(period, period_key(period, now))
    return start
