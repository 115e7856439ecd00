"""Calendar helpers for month grids and day navigation."""

from __future__ import annotations

from datetime import date
from calendar import monthrange


def days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def is_weekend(d: date) -> bool:
    # Saturday = 5, Sunday = 6 in weekday()
    return d.weekday() >= 5


def format_date(d: date) -> str:
    """Format a date as YYYY-MM-DD, the form the service expects."""
    return d.isoformat()


def first_weekday(year: int, month: int) -> int:
    """Column of the 1st in a Monday-first grid (Monday = 0)."""
    return date(year, month, 1).weekday()


def month_name(year: int, month: int) -> str:
    return date(year, month, 1).strftime("%B")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move delta months forward or back, rolling the year over."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def is_future_month(year: int, month: int, today: date | None = None) -> bool:
    today = today or date.today()
    return (year, month) > (today.year, today.month)


def find_next_weekday(year: int, month: int, day: int, delta: int) -> int:
    """Step from day by delta until a weekday is found.

    Stays on the current day if no weekday exists in that direction
    inside the month.
    """
    last = days_in_month(year, month)
    nxt = day + delta
    while 1 <= nxt <= last and is_weekend(date(year, month, nxt)):
        nxt += delta
    if nxt < 1 or nxt > last:
        return day
    return nxt


def step_week(year: int, month: int, day: int, delta: int) -> int:
    """Move a week up or down, wrapping inside the month and skipping weekends."""
    last = days_in_month(year, month)
    nxt = day + delta * 7
    if nxt < 1:
        nxt = max(1, nxt + last)
    if nxt > last:
        nxt = min(last, nxt - last)
    step = 1 if delta > 0 else -1
    while 1 <= nxt <= last and is_weekend(date(year, month, nxt)):
        nxt += step
    if nxt < 1 or nxt > last:
        return day
    return nxt


def initial_weekday(year: int, month: int, day: int) -> int:
    """Nearest weekday to day, preferring later days in the month."""
    last = days_in_month(year, month)
    d = day
    while d <= last and is_weekend(date(year, month, d)):
        d += 1
    if d > last:
        d = day
        while d >= 1 and is_weekend(date(year, month, d)):
            d -= 1
    return max(1, d)


def build_weeks_grid(year: int, month: int) -> list[list[int | None]]:
    """Monday-first rows of day numbers, padded with None."""
    weeks: list[list[int | None]] = []
    week: list[int | None] = [None] * first_weekday(year, month)

    for day in range(1, days_in_month(year, month) + 1):
        week.append(day)
        if len(week) == 7:
            weeks.append(week)
            week = []

    if week:
        week.extend([None] * (7 - len(week)))
        weeks.append(week)

    return weeks


def format_hours_as_duration(hours) -> str:
    """Render fractional hours as 7h or 7h30m; zero or missing is '-'."""
    if not hours:
        return "-"
    h = int(hours)
    m = round((float(hours) - h) * 60)
    if m == 60:
        h, m = h + 1, 0
    if m == 0:
        return f"{h}h"
    return f"{h}h{m}m"


def truncate_label(text: str, max_len: int = 12) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"
