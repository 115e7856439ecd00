"""HH:MM arithmetic and schedule reconstruction from clock entries."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from models import TimesheetEntry, TimeSpan, WorkSchedule

# Clock entries ending before this hour count toward the morning half,
# those starting at or after AFTERNOON_FROM toward the afternoon half.
MORNING_BEFORE = 14
AFTERNOON_FROM = 12


def _to_int(part: str) -> int:
    try:
        return int(part)
    except ValueError:
        return 0


def split_time(value: str) -> tuple[int, int]:
    """Split HH:MM into (hours, minutes), clamped to a valid clock time.

    Missing or non-numeric parts are read as zero.
    """
    parts = (value or "").split(":")
    hours = _to_int(parts[0]) if parts[0] else 0
    minutes = _to_int(parts[1]) if len(parts) > 1 and parts[1] else 0
    return min(max(hours, 0), 23), min(max(minutes, 0), 59)


def pad_time(value: str) -> str:
    hours, minutes = split_time(value)
    return f"{hours:02d}:{minutes:02d}"


def parse_minutes(value: str) -> int:
    hours, minutes = split_time(value)
    return hours * 60 + minutes


def span_hours(span: TimeSpan) -> Decimal:
    """Duration of a span in hours; a reversed span is zero."""
    minutes = max(0, parse_minutes(span.end) - parse_minutes(span.start))
    return Decimal(minutes) / Decimal(60)


def total_hours(schedule: WorkSchedule) -> Decimal:
    total = span_hours(schedule.morning) + span_hours(schedule.afternoon)
    return total.quantize(Decimal("0.01"))


def format_total_hours(hours: Decimal) -> str:
    minutes = int((hours * 60).to_integral_value())
    h, m = divmod(minutes, 60)
    if m == 0:
        return f"{h}h"
    return f"{h}h{m}m"


def _local(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        return ts.astimezone()
    return ts


def _hhmm(ts: datetime) -> str:
    return _local(ts).strftime("%H:%M")


def extract_schedule(entries: list[TimesheetEntry], default: WorkSchedule) -> WorkSchedule:
    """Rebuild a morning/afternoon schedule from a day's clock entries.

    An entry can land in both halves. A half with no entries keeps the
    default's values.
    """
    clock = [e for e in entries if e.is_clock]
    if not clock:
        return WorkSchedule(
            morning=TimeSpan(default.morning.start, default.morning.end),
            afternoon=TimeSpan(default.afternoon.start, default.afternoon.end),
        )

    morning = [e for e in clock if _local(e.end).hour < MORNING_BEFORE]
    afternoon = [e for e in clock if _local(e.start).hour >= AFTERNOON_FROM]

    def merge(group: list[TimesheetEntry], fallback: TimeSpan) -> TimeSpan:
        if not group:
            return TimeSpan(fallback.start, fallback.end)
        start = min((e.start for e in group), key=_local)
        end = max((e.end for e in group), key=_local)
        return TimeSpan(_hhmm(start), _hhmm(end))

    return WorkSchedule(
        morning=merge(morning, default.morning),
        afternoon=merge(afternoon, default.afternoon),
    )
