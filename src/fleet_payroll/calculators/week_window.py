"""Monday-Sunday payroll week arithmetic.

Every caller that needs to turn a (year, week) pair into dates, or a date into
its payroll week, goes through this module. Weeks follow ISO-8601 numbering:
week 1 is the week holding the year's first Thursday, weeks start on Monday.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta

from fleet_payroll.exceptions import ValidationError

_WEEK_KEY = re.compile(r"^(\d{4})-W(\d{1,2})$")


def weeks_in_year(year: int) -> int:
    """Number of ISO weeks in ``year`` (52 or 53)."""
    return date(year, 12, 28).isocalendar()[1]


@dataclass(frozen=True)
class WeekWindow:
    """A payroll week identified both by number and by its date range."""

    year: int
    week: int
    start: date
    end: date

    @property
    def key(self) -> str:
        return f"{self.year}-W{self.week:02d}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def pay_date(self, offset_days: int) -> date:
        """Pay date falling ``offset_days`` after the week ends."""
        return self.end + timedelta(days=offset_days)

    def previous(self) -> WeekWindow:
        return week_of(self.start - timedelta(days=7))

    def next(self) -> WeekWindow:
        return week_of(self.start + timedelta(days=7))

    @classmethod
    def from_dates(cls, start: date, end: date) -> WeekWindow:
        """Build a window from an explicit Monday/Sunday pair."""
        if start.weekday() != 0:
            raise ValidationError(f"Week start {start.isoformat()} is not a Monday")
        if end != start + timedelta(days=6):
            raise ValidationError(
                f"Week end {end.isoformat()} is not the Sunday after {start.isoformat()}"
            )
        return week_of(start)


def week_window(year: int, week: int) -> WeekWindow:
    """Return the Monday-Sunday window of ISO week ``week`` in ``year``."""
    if year < 1 or year > 9999:
        raise ValidationError(f"Invalid year {year}")
    if week < 1 or week > weeks_in_year(year):
        raise ValidationError(f"Year {year} has no week {week}")
    start = date.fromisocalendar(year, week, 1)
    return WeekWindow(year=year, week=week, start=start, end=start + timedelta(days=6))


def week_of(day: date) -> WeekWindow:
    """Return the payroll week containing ``day``."""
    iso_year, iso_week, _ = day.isocalendar()
    return week_window(iso_year, iso_week)


def parse_week_key(key: str) -> WeekWindow:
    """Parse a ``YYYY-Www`` key."""
    match = _WEEK_KEY.match(key.strip())
    if match is None:
        raise ValidationError(f"Invalid week key '{key}'")
    return week_window(int(match.group(1)), int(match.group(2)))


def resolve_window(
    year: int | None = None,
    week: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> WeekWindow:
    """Resolve request parameters naming a week into a window.

    Accepts either ``year`` + ``week`` or a ``start_date`` + ``end_date``
    pair. When both are given they must agree.
    """
    by_number = None
    by_dates = None
    if year is not None and week is not None:
        by_number = week_window(year, week)
    if start_date is not None and end_date is not None:
        by_dates = WeekWindow.from_dates(start_date, end_date)

    if by_number is None and by_dates is None:
        raise ValidationError("year and week, or start_date and end_date, are required")
    if by_number is not None and by_dates is not None and by_number != by_dates:
        raise ValidationError(
            f"Dates {start_date} to {end_date} do not match week {by_number.key}"
        )
    return by_number or by_dates
