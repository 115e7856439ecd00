"""Merge the month feeds into per-day classifications.

Everything here is pure: no I/O, no mutation of the feeds passed in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from models import DayStatus, Holiday, MonthFeeds, TimeOffRequest, TimesheetEntry
from utils import days_in_month, is_weekend


def expand_holidays(holidays: list[Holiday]) -> dict[date, list[str]]:
    """Map every date covered by a holiday range to the holiday names."""
    by_date: dict[date, list[str]] = {}
    for holiday in holidays:
        current = holiday.start
        while current <= holiday.end:
            by_date.setdefault(current, []).append(holiday.name)
            current += timedelta(days=1)
    return by_date


def expand_time_off(requests: list[TimeOffRequest]) -> dict[date, str]:
    """Map each explicitly listed time-off date to its label; first request wins."""
    by_date: dict[date, str] = {}
    for request in requests:
        for d in request.dates:
            by_date.setdefault(d, request.label)
    return by_date


def sum_hours(entries: list[TimesheetEntry]) -> dict[date, Decimal]:
    """Total the hours the service reports per date."""
    totals: dict[date, Decimal] = {}
    for entry in entries:
        totals[entry.date] = totals.get(entry.date, Decimal("0")) + (entry.hours or Decimal("0"))
    return totals


@dataclass
class DayIndex:
    """Per-date lookups built once per feed load."""

    holidays: dict[date, list[str]] = field(default_factory=dict)
    time_off: dict[date, str] = field(default_factory=dict)
    hours: dict[date, Decimal] = field(default_factory=dict)

    @classmethod
    def build(cls, feeds: MonthFeeds) -> DayIndex:
        return cls(
            holidays=expand_holidays(feeds.holidays),
            time_off=expand_time_off(feeds.time_off),
            hours=sum_hours(feeds.entries),
        )

    def hours_for(self, d: date) -> Decimal:
        return self.hours.get(d, Decimal("0"))

    def classify(self, d: date, today: date | None = None) -> DayStatus:
        today = today or date.today()
        if is_weekend(d):
            return DayStatus.WEEKEND
        if self.holidays.get(d):
            return DayStatus.HOLIDAY
        if d in self.time_off:
            return DayStatus.TIME_OFF
        if self.hours_for(d) > 0:
            return DayStatus.HAS_HOURS
        if d > today:
            return DayStatus.FUTURE
        return DayStatus.MISSING

    def label(self, d: date) -> str | None:
        names = self.holidays.get(d, [])
        if len(names) > 1:
            return f"{len(names)} holidays"
        if names:
            return names[0]
        return self.time_off.get(d)

    def is_missing(self, d: date) -> bool:
        return (
            not is_weekend(d)
            and not self.holidays.get(d)
            and d not in self.time_off
            and self.hours_for(d) <= 0
        )


def classify(d: date, feeds: MonthFeeds, today: date | None = None) -> tuple[DayStatus, str | None]:
    """Classify one date against the feeds. Returns (status, label)."""
    index = DayIndex.build(feeds)
    return index.classify(d, today), index.label(d)


@dataclass
class DayInfo:
    kind: str = "normal"
    label: str | None = None
    holiday_names: list[str] = field(default_factory=list)

    @property
    def editable(self) -> bool:
        return self.kind == "normal"


def day_info(d: date, feeds: MonthFeeds) -> DayInfo:
    """Describe whether a date is a holiday, time off or a normal workday."""
    index = DayIndex.build(feeds)
    names = index.holidays.get(d, [])
    if names:
        return DayInfo(kind="holiday", label=index.label(d), holiday_names=list(names))
    if d in index.time_off:
        return DayInfo(kind="timeOff", label=index.time_off[d])
    return DayInfo()


def find_missing_days(
    year: int,
    month: int,
    feeds: MonthFeeds,
    *,
    today: date | None = None,
    include_future: bool = True,
) -> list[date]:
    """Workdays in the month with no holiday, no time off and no hours.

    With include_future=False, days after today are left out.
    """
    today = today or date.today()
    index = DayIndex.build(feeds)
    missing = []
    for day in range(1, days_in_month(year, month) + 1):
        d = date(year, month, day)
        if not include_future and d > today:
            break
        if index.is_missing(d):
            missing.append(d)
    return missing


def last_working_day(year: int, month: int, feeds: MonthFeeds) -> date:
    """Last day of the month that is not a weekend, holiday or time off."""
    index = DayIndex.build(feeds)
    last = date(year, month, days_in_month(year, month))
    current = last
    while current.month == month:
        if not is_weekend(current) and not index.holidays.get(current) and current not in index.time_off:
            return current
        current -= timedelta(days=1)
    return last
