from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import ConfigurationError, InvalidIntervalError


@dataclass(frozen=True)
class Interval:
    """Half-open span of aware timestamps, ``[start, end)``."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class TimeWindow:
    """Time-of-day span with no date attached."""

    start: time
    end: time


@dataclass(frozen=True)
class DateRange:
    """Day-granular range, inclusive of both endpoints."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and b.start < a.end


def duration(interval: Interval) -> timedelta:
    if interval.end <= interval.start:
        raise InvalidIntervalError(
            "Start time must be before end time",
            details={"start": interval.start.isoformat(), "end": interval.end.isoformat()},
        )
    return interval.end - interval.start


def validate_time_window(window: TimeWindow) -> TimeWindow:
    if window.end <= window.start:
        raise InvalidIntervalError(
            "End time must be after start time",
            details={"start": window.start.isoformat(), "end": window.end.isoformat()},
        )
    return window


def validate_event_duration(interval: Interval, *, min_minutes: int, max_minutes: int) -> timedelta:
    span = duration(interval)
    minutes = span.total_seconds() / 60
    if minutes < min_minutes:
        raise InvalidIntervalError(
            f"Class duration should be at least {min_minutes} minutes",
            details={"minutes": minutes},
        )
    if minutes > max_minutes:
        raise InvalidIntervalError(
            f"Class duration should not exceed {max_minutes} minutes",
            details={"minutes": minutes},
        )
    return span


def get_timezone(name: str) -> tzinfo:
    if name.strip().upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown timetable timezone: {name}") from exc


def ensure_aware(value: datetime, tz: tzinfo) -> datetime:
    # Naive request timestamps are wall-clock times in the timetable's zone.
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def combine_date_and_time_of_day(day: date, time_of_day: time, tz: tzinfo) -> datetime:
    return datetime.combine(day, time_of_day.replace(tzinfo=None), tzinfo=tz)


def local_date(value: datetime, tz: tzinfo) -> date:
    return value.astimezone(tz).date()


def day_of_week_of(day: date) -> int:
    """0 = Sunday through 6 = Saturday."""
    return day.isoweekday() % 7


def first_matching_day(start: date, day_of_week: int) -> date:
    return start + timedelta(days=(day_of_week - day_of_week_of(start)) % 7)


def week_bounds(day: date) -> DateRange:
    week_start = day - timedelta(days=day_of_week_of(day))
    return DateRange(start=week_start, end=week_start + timedelta(days=6))


def local_day_interval(day_range: DateRange, tz: tzinfo) -> Interval:
    """Timestamp span covering every moment of the given local days."""
    return Interval(
        start=combine_date_and_time_of_day(day_range.start, time.min, tz),
        end=combine_date_and_time_of_day(day_range.end + timedelta(days=1), time.min, tz),
    )
