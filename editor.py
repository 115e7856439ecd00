"""Cursor-addressed editing of the four schedule time fields."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from models import EditField, WorkSchedule
from schedule import split_time, total_hours

FIELD_ORDER = [
    EditField.MORNING_START,
    EditField.MORNING_END,
    EditField.AFTERNOON_START,
    EditField.AFTERNOON_END,
]

# hour tens, hour units, minute tens, minute units
CURSOR_POSITIONS = 4


def _hour_tens_choices(units: int) -> list[int]:
    # 2x is only a valid hour for units 0-3
    return [0, 1, 2] if units <= 3 else [0, 1]


def adjust_time_digit(value: str, position: int, delta: int) -> str:
    """Adjust one digit of an HH:MM value, wrapping so the result stays valid.

    Units positions roll the whole hour (mod 24) or minute (mod 60).
    Tens positions cycle only the tens digit and leave units untouched,
    so 23 with the hour tens raised becomes 03.
    """
    hours, minutes = split_time(value)

    if position == 0:
        tens, units = divmod(hours, 10)
        choices = _hour_tens_choices(units)
        tens = choices[(choices.index(tens) + delta) % len(choices)]
        hours = tens * 10 + units
    elif position == 1:
        hours = (hours + delta) % 24
    elif position == 2:
        tens, units = divmod(minutes, 10)
        minutes = ((tens + delta) % 6) * 10 + units
    elif position == 3:
        minutes = (minutes + delta) % 60

    return f"{hours:02d}:{minutes:02d}"


@dataclass(frozen=True)
class TimeFieldEditor:
    """Immutable editing state; every operation returns a new editor."""

    schedule: WorkSchedule
    field: EditField = EditField.MORNING_START
    cursor: int = 0

    @property
    def value(self) -> str:
        return self.schedule.get(self.field)

    def cycle_field(self, forward: bool = True) -> TimeFieldEditor:
        idx = FIELD_ORDER.index(self.field)
        idx = (idx + (1 if forward else -1)) % len(FIELD_ORDER)
        return replace(self, field=FIELD_ORDER[idx], cursor=0)

    def move_cursor(self, delta: int) -> TimeFieldEditor:
        cursor = min(max(self.cursor + delta, 0), CURSOR_POSITIONS - 1)
        return replace(self, cursor=cursor)

    def adjust_digit(self, delta: int) -> TimeFieldEditor:
        new_value = adjust_time_digit(self.value, self.cursor, delta)
        return replace(self, schedule=self.schedule.with_value(self.field, new_value))

    def total_hours(self) -> Decimal:
        return total_hours(self.schedule)

    def handle_key(self, name: str, shift: bool = False) -> TimeFieldEditor | None:
        """Apply a navigation key. Returns None when the key is not an edit key."""
        if name == "tab":
            return self.cycle_field(forward=not shift)
        if name == "left":
            return self.move_cursor(-1)
        if name == "right":
            return self.move_cursor(1)
        if name == "up":
            return self.adjust_digit(1)
        if name == "down":
            return self.adjust_digit(-1)
        return None
