from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class DayStatus(str, Enum):
    """Classification of a calendar day, highest precedence first."""

    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    TIME_OFF = "timeOff"
    HAS_HOURS = "hasHours"
    FUTURE = "future"
    MISSING = "missing"


class EditField(str, Enum):
    MORNING_START = "morningStart"
    MORNING_END = "morningEnd"
    AFTERNOON_START = "afternoonStart"
    AFTERNOON_END = "afternoonEnd"


@dataclass(frozen=True)
class TimeSpan:
    start: str
    end: str


@dataclass(frozen=True)
class WorkSchedule:
    morning: TimeSpan
    afternoon: TimeSpan

    def get(self, f: EditField) -> str:
        """Return the HH:MM value held by an edit field."""
        if f is EditField.MORNING_START:
            return self.morning.start
        if f is EditField.MORNING_END:
            return self.morning.end
        if f is EditField.AFTERNOON_START:
            return self.afternoon.start
        return self.afternoon.end

    def with_value(self, f: EditField, value: str) -> WorkSchedule:
        """Return a copy of the schedule with one field replaced."""
        if f is EditField.MORNING_START:
            return replace(self, morning=replace(self.morning, start=value))
        if f is EditField.MORNING_END:
            return replace(self, morning=replace(self.morning, end=value))
        if f is EditField.AFTERNOON_START:
            return replace(self, afternoon=replace(self.afternoon, start=value))
        return replace(self, afternoon=replace(self.afternoon, end=value))

    def spans(self) -> tuple[TimeSpan, TimeSpan]:
        return (self.morning, self.afternoon)


DEFAULT_SCHEDULE = WorkSchedule(
    morning=TimeSpan("09:00", "12:00"),
    afternoon=TimeSpan("14:00", "18:00"),
)


@dataclass
class TimesheetEntry:
    id: int
    date: date
    kind: str = "hour"
    hours: Decimal | None = None
    start: datetime | None = None
    end: datetime | None = None
    note: str | None = None
    project_name: str | None = None

    @property
    def is_clock(self) -> bool:
        return self.kind == "clock" and self.start is not None and self.end is not None


@dataclass
class TimeOffRequest:
    id: int
    name: str = ""
    type_name: str = ""
    start: date | None = None
    end: date | None = None
    dates: frozenset[date] = field(default_factory=frozenset)

    @property
    def label(self) -> str:
        """Display label: the leave type, else the request name."""
        return self.type_name or self.name or "Time Off"


@dataclass
class Holiday:
    name: str
    start: date
    end: date


@dataclass
class Employee:
    id: str
    first_name: str = ""
    last_name: str = ""
    display_name: str | None = None
    job_title: str | None = None
    work_email: str | None = None
    department: str | None = None

    @property
    def full_name(self) -> str:
        if self.display_name:
            return self.display_name
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Credentials:
    company_domain: str
    api_key: str


@dataclass
class MailConfig:
    email: str
    app_password: str


@dataclass
class MonthFeeds:
    """The three per-month data feeds the calendar is built from."""

    entries: list[TimesheetEntry] = field(default_factory=list)
    time_off: list[TimeOffRequest] = field(default_factory=list)
    holidays: list[Holiday] = field(default_factory=list)
