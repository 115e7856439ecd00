"""Custom widgets for the clocker application."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from textual.widgets import Static
from rich import box
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from models import DayStatus, Employee
from reconcile import DayIndex
from schedule import pad_time
from utils import build_weeks_grid, format_hours_as_duration, month_name, truncate_label

COLORS = {
    "selected": "#f0abfc",
    "hasHours": "#86efac",
    "timeOff": "#fcd34d",
    "holiday": "#38bdf8",
    "missing": "#f87171",
    "weekend": "#64748b",
    "border": "#334155",
    "header": "#67e8f9",
}

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
LABEL_WIDTH = 12


def day_card(day: int | None, hours: Decimal, selected: bool, is_today: bool,
             status: DayStatus, label: str | None = None):
    """Render one calendar cell as a bordered panel."""
    if day is None:
        return Text("")

    duration = format_hours_as_duration(hours) if hours > 0 else ""

    border = COLORS["border"]
    if selected:
        border = COLORS["selected"]
    elif status in (DayStatus.HAS_HOURS, DayStatus.HOLIDAY, DayStatus.TIME_OFF, DayStatus.MISSING):
        border = COLORS[status.value]

    top = Text()
    if status is DayStatus.WEEKEND:
        top.append(str(day), style="dim")
    else:
        top.append(str(day), style="bold" if selected else "")
    if is_today:
        top.append(" *", style="bold")

    content = Text(justify="center")
    if status is DayStatus.HAS_HOURS:
        content.append(duration, style="bold")
    elif status is DayStatus.HOLIDAY:
        content.append(truncate_label(label or "Hol", LABEL_WIDTH), style=f"bold {COLORS['holiday']}")
        if duration:
            content.append(f"\n{duration}", style="dim")
    elif status is DayStatus.TIME_OFF:
        content.append(truncate_label(label or "PTO", LABEL_WIDTH), style=COLORS["timeOff"])
    elif status is DayStatus.MISSING:
        content.append("!", style=f"bold {COLORS['missing']}")
    elif status is DayStatus.FUTURE:
        content.append("-", style="dim")

    return Panel(
        Group(top, content),
        box=box.DOUBLE if selected else box.SQUARE,
        border_style=border,
        padding=(0, 1),
        height=5,
    )


def time_field_text(value: str, active: bool, cursor: int) -> Text:
    """Render HH:MM with the cursor digit highlighted when active."""
    text = Text()
    digit = 0
    for ch in pad_time(value):
        if ch == ":":
            text.append(ch, style="dim")
            continue
        if active and digit == cursor:
            text.append(ch, style=f"reverse bold {COLORS['selected']}")
        else:
            text.append(ch, style="bold" if active else "")
        digit += 1
    return text


class EmployeeSidebar(Static):
    """Name, role and team of the signed-in employee."""

    def update_display(self, employee: Employee | None):
        text = Text()
        text.append("User\n\n", style="bold")
        if employee is None:
            text.append("Loading...", style="dim")
            self.update(text)
            return

        text.append("Name\n", style="dim")
        text.append(f"{employee.full_name}\n\n", style="bold")
        if employee.job_title:
            text.append("Role\n", style="dim")
            text.append(f"{employee.job_title}\n\n")
        if employee.department:
            text.append("Team\n", style="dim")
            text.append(f"{employee.department}\n")
        self.update(text)


class MonthHeader(Static):
    def __init__(self, year: int, month: int, **kwargs):
        super().__init__(**kwargs)
        self.year = year
        self.month = month

    def update_display(self, loading: bool = False):
        text = Text(justify="center")
        text.append("<  ", style="dim")
        text.append(f"{month_name(self.year, self.month)} {self.year}", style=f"bold {COLORS['header']}")
        text.append("  >", style="dim")
        if loading:
            text.append("  loading...", style="dim")
        self.update(text)


class CalendarGrid(Static):
    """Monday-first month grid of day cards."""

    def update_display(self, year: int, month: int, index: DayIndex, selected_day: int, today: date):
        table = Table(box=None, expand=True, show_edge=False, padding=0, pad_edge=False)
        for i, name in enumerate(DAY_NAMES):
            table.add_column(name, justify="center", ratio=1, header_style="dim" if i >= 5 else "bold")

        for week in build_weeks_grid(year, month):
            cells = []
            for day in week:
                if day is None:
                    cells.append(day_card(None, Decimal("0"), False, False, DayStatus.WEEKEND))
                    continue
                d = date(year, month, day)
                cells.append(day_card(
                    day,
                    index.hours_for(d),
                    selected=day == selected_day,
                    is_today=d == today,
                    status=index.classify(d, today),
                    label=index.label(d),
                ))
            table.add_row(*cells)

        self.update(table)


class CalendarLegend(Static):
    def on_mount(self) -> None:
        self.update(self.render_legend())

    @staticmethod
    def render_legend() -> Text:
        text = Text(justify="center")
        text.append("* ", style="bold")
        text.append("Today   ", style="dim")
        for key, label in (("missing", "Missing"), ("hasHours", "Logged"),
                           ("timeOff", "Time Off"), ("holiday", "Holiday")):
            text.append("  ", style=f"on {COLORS[key]}")
            text.append(f" {label}   ", style="dim")
        return text
