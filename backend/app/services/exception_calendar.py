from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from app.services.intervals import DateRange
from app.services.timetable_types import CalendarScope, ExceptionRange


def is_excluded(day: date, scope: CalendarScope, exceptions: Iterable[ExceptionRange]) -> bool:
    """True when any exception whose populated scope fields match ``scope`` covers ``day``.

    An unset scope field on the exception is a wildcard for that axis; a set
    field must equal the query's value, so a batch-specific holiday never
    leaks to a query that does not name a batch.
    """
    return any(item.date_range.contains(day) and item.matches_scope(scope) for item in exceptions)


class ExceptionCalendar:
    def __init__(self, exceptions: Iterable[ExceptionRange]):
        self.exceptions = list(exceptions)

    def for_scope(self, scope: CalendarScope) -> "ExceptionCalendar":
        return ExceptionCalendar(item for item in self.exceptions if item.matches_scope(scope))

    def is_excluded(self, day: date, scope: CalendarScope) -> bool:
        return is_excluded(day, scope, self.exceptions)

    def covering(self, day: date, scope: CalendarScope) -> list[ExceptionRange]:
        return [item for item in self.exceptions if item.date_range.contains(day) and item.matches_scope(scope)]

    def excluded_dates(self, window: DateRange, scope: CalendarScope) -> list[date]:
        scoped = self.for_scope(scope).exceptions
        excluded: set[date] = set()
        for item in scoped:
            start = max(item.date_range.start, window.start)
            end = min(item.date_range.end, window.end)
            day = start
            while day <= end:
                excluded.add(day)
                day += timedelta(days=1)
        return sorted(excluded)
