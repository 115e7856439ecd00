"""Modal screens for the clocker application."""

from __future__ import annotations

from datetime import date
from typing import Awaitable, Callable

from textual import events
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Static
from rich.text import Text

from controllers import (
    BulkPhase,
    BulkSubmitController,
    DayViewController,
    EditController,
    InputMode,
    KeyPress,
    SettingsController,
    SettingsTab,
    WriteSpan,
)
from editor import FIELD_ORDER
from errors import ClockerError
from models import Credentials, EditField, MailConfig, WorkSchedule
from schedule import format_total_hours
from widgets import COLORS, time_field_text

KEY_ALIASES = {
    "enter": "return",
    "ctrl+h": "backspace",
}

FIELD_LABELS = {
    EditField.MORNING_START: "Morning",
    EditField.AFTERNOON_START: "Afternoon",
}


def keypress_from_event(event: events.Key) -> KeyPress:
    """Translate a Textual key event into a logical KeyPress."""
    key = event.key
    shift = False
    if key.startswith("shift+"):
        shift = True
        key = key[len("shift+"):]
    key = KEY_ALIASES.get(key, key)

    character = event.character if event.is_printable else None
    # Punctuation arrives as e.g. "comma"; use the typed character as the name
    if character and len(key) > 1 and key not in ("space",):
        key = character
    return KeyPress(name=key, character=character, shift=shift)


def schedule_lines(schedule: WorkSchedule, active: EditField | None, cursor: int) -> Text:
    """Two rows of HH:MM fields, the active one showing its cursor."""
    text = Text()
    for start_field in (EditField.MORNING_START, EditField.AFTERNOON_START):
        end_field = FIELD_ORDER[FIELD_ORDER.index(start_field) + 1]
        text.append(f"{FIELD_LABELS[start_field]:<11}", style="dim")
        text.append_text(time_field_text(schedule.get(start_field), start_field == active, cursor))
        text.append("  -  ", style="dim")
        text.append_text(time_field_text(schedule.get(end_field), end_field == active, cursor))
        text.append("\n")
    return text


def format_long_date(d: date) -> str:
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"


class ControllerScreen(ModalScreen):
    """Modal that forwards every keystroke to its controller."""

    DEFAULT_CSS = """
    ControllerScreen {
        align: center middle;
    }

    .dialog {
        width: 64;
        height: auto;
        padding: 1 2;
        background: $surface;
        border: round $primary;
    }
    """

    BODY_ID = "dialog-body"

    def __init__(self):
        super().__init__()
        self.closed = False

    def finish(self, result) -> None:
        self.closed = True
        self.dismiss(result)

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog"):
            yield Static(id=self.BODY_ID)

    def on_mount(self) -> None:
        self.refresh_body()

    def refresh_body(self) -> None:
        self.query_one(f"#{self.BODY_ID}", Static).update(self.render_body())

    def render_body(self) -> Text:
        raise NotImplementedError

    @property
    def captures_text(self) -> bool:
        """True while printable keys are being typed into a field."""
        return False

    def handle_keypress(self, key: KeyPress) -> str | None:
        raise NotImplementedError

    def run_command(self, command: str) -> None:
        if command == "close":
            self.close()
        elif command == "quit":
            # Through the app action so the dialog guard is released
            self.app.call_later(self.app.run_action, "quit")

    def close(self) -> None:
        self.finish(None)

    def on_key(self, event: events.Key) -> None:
        command = self.handle_keypress(keypress_from_event(event))
        event.prevent_default()
        event.stop()
        if command:
            self.run_command(command)
        if not self.closed:
            self.refresh_body()


class DayScreen(ControllerScreen):
    """Read-only view of one day. Dismisses with "edit" when edit was requested."""

    def __init__(self, controller: DayViewController):
        super().__init__()
        self.controller = controller

    def handle_keypress(self, key: KeyPress) -> str | None:
        return self.controller.handle_key(key)

    def run_command(self, command: str) -> None:
        if command == "edit":
            self.finish("edit")
        else:
            super().run_command(command)

    def render_body(self) -> Text:
        c = self.controller
        text = Text()
        text.append(f"{format_long_date(c.day)}\n\n", style="bold")

        if c.info.kind == "holiday":
            text.append(f"{c.info.label or 'Holiday'}\n", style=f"bold {COLORS['holiday']}")
            if len(c.info.holiday_names) > 1:
                for name in c.info.holiday_names:
                    text.append(f"  {name}\n", style="dim")
            text.append("\n")
        elif c.info.kind == "timeOff":
            text.append(f"{c.info.label or 'Time Off'}\n\n", style=f"bold {COLORS['timeOff']}")
        elif not c.entries:
            text.append("No time entries for this day\n\n", style="dim")
        else:
            text.append("Entries:\n", style="dim")
            for entry in c.entries:
                if entry.is_clock:
                    text.append(f"  {entry.start.astimezone().strftime('%H:%M')} - "
                                f"{entry.end.astimezone().strftime('%H:%M')} ")
                else:
                    text.append(f"  {format_total_hours(entry.hours or 0)} ")
                if entry.project_name:
                    text.append(f"({entry.project_name})", style="dim")
                if entry.note:
                    text.append(f" - {entry.note}", style="dim")
                text.append("\n")
            text.append(f"\nTotal: {format_total_hours(c.total_hours)}\n\n", style="bold")

        text.append("[Enter/Esc] Close", style="dim")
        if c.info.editable:
            text.append("   [E] Edit", style="dim")
        return text


class EditScreen(ControllerScreen):
    """Edit one day's morning and afternoon spans. Dismisses True once saved."""

    def __init__(self, controller: EditController, write_span: WriteSpan):
        super().__init__()
        self.controller = controller
        self.write_span = write_span

    def handle_keypress(self, key: KeyPress) -> str | None:
        return self.controller.handle_key(key)

    def close(self) -> None:
        self.finish(False)

    def run_command(self, command: str) -> None:
        if command == "save":
            self.run_worker(self._save(), exclusive=True)
        else:
            super().run_command(command)

    async def _save(self) -> None:
        self.refresh_body()
        saved = await self.controller.save(self.write_span)
        if saved:
            self.finish(True)
        else:
            self.refresh_body()

    def render_body(self) -> Text:
        c = self.controller
        text = Text()
        text.append(f"Edit {format_long_date(c.day)}\n\n", style="bold")

        if c.future_month:
            text.append("Future months cannot be edited yet.\n\n", style="dim")
            text.append("[Esc] Close", style="dim")
            return text

        text.append_text(schedule_lines(c.editor.schedule, c.editor.field, c.editor.cursor))
        text.append(f"\nTotal: {format_total_hours(c.editor.total_hours())}\n", style="bold")
        if c.error:
            text.append(f"\n{c.error}\n", style=f"bold {COLORS['missing']}")
        if c.saving:
            text.append("\nSaving...", style="dim")
        else:
            text.append("\n[Tab] Field  [←→] Digit  [↑↓] Change  [Enter] Save  [Esc] Cancel", style="dim")
        return text


class BulkSubmitScreen(ControllerScreen):
    """Submit the schedule for every missing day. Dismisses with the number of days written."""

    def __init__(
        self,
        controller: BulkSubmitController,
        schedule: WorkSchedule,
        write_span: WriteSpan,
        reload_missing: Callable[[], Awaitable[list[date]]],
    ):
        super().__init__()
        self.controller = controller
        self.schedule = schedule
        self.write_span = write_span
        self.reload_missing = reload_missing

    def handle_keypress(self, key: KeyPress) -> str | None:
        return self.controller.handle_key(key)

    def close(self) -> None:
        self.finish(self.controller.submitted)

    def run_command(self, command: str) -> None:
        if command == "submit":
            self.run_worker(self._submit(), exclusive=True)
        elif command == "retry":
            self.run_worker(self._retry(), exclusive=True)
        else:
            super().run_command(command)

    async def _submit(self) -> None:
        if await self.controller.submit(self.schedule, self.write_span, self._on_progress):
            self.close()
        else:
            self.refresh_body()

    def _on_progress(self, done: int, day: date) -> None:
        self.refresh_body()

    async def _retry(self) -> None:
        try:
            days = await self.reload_missing()
        except ClockerError as e:
            self.controller.error = f"Reload failed: {e}"
        else:
            self.controller.retry(days)
        self.refresh_body()

    def render_body(self) -> Text:
        c = self.controller
        text = Text()
        text.append("Bulk Submit Hours\n\n", style="bold")
        if c.error:
            text.append(f"{c.error}\n", style=f"bold {COLORS['missing']}")
            text.append(f"Submitted {c.progress} of {len(c.missing_days)} before the failure\n\n")

        if c.future_month:
            text.append("Future months cannot be submitted yet.\n\n", style="dim")
            text.append("[Esc] Close", style="dim")
            return text

        text.append(f"{len(c.missing_days)} missing days found\n")
        text.append(
            f"Will submit {format_total_hours(c.hours_per_day)} for each "
            f"({format_total_hours(c.total_hours)} total)\n\n",
            style="dim",
        )

        if c.phase is BulkPhase.SUBMITTING:
            text.append(f"Submitting... {c.progress}/{len(c.missing_days)}")
        elif c.phase is BulkPhase.FAILED:
            text.append("[Enter] Retry   [Esc] Close", style="dim")
        elif c.missing_days:
            text.append("[Enter] Submit All   [Esc] Cancel", style="dim")
        else:
            text.append("Nothing to submit.   [Esc] Close", style="dim")
        return text


class SettingsScreen(ControllerScreen):
    """Schedule and connection settings. Dismisses True when something was saved."""

    def __init__(
        self,
        controller: SettingsController,
        save_schedule: Callable[[WorkSchedule], None],
        save_credentials: Callable[[Credentials], None],
        verify_mail: Callable[[MailConfig], Awaitable[None]],
        save_mail: Callable[[MailConfig], None],
    ):
        super().__init__()
        self.controller = controller
        self.save_schedule = save_schedule
        self.save_credentials = save_credentials
        self.verify_mail = verify_mail
        self.save_mail = save_mail
        self.changed = False

    @property
    def captures_text(self) -> bool:
        return self.controller.in_input_mode

    def handle_keypress(self, key: KeyPress) -> str | None:
        return self.controller.handle_key(key)

    def close(self) -> None:
        self.finish(self.changed)

    def run_command(self, command: str) -> None:
        if command == "save_schedule":
            if self.controller.save_schedule(self.save_schedule):
                self.changed = True
                self.close()
        elif command == "confirm_input":
            self.run_worker(self._confirm_input(), exclusive=True)
        else:
            super().run_command(command)

    async def _confirm_input(self) -> None:
        self.refresh_body()
        if await self.controller.confirm_input(self.save_credentials, self.verify_mail, self.save_mail):
            self.changed = True
        self.refresh_body()

    def on_paste(self, event: events.Paste) -> None:
        self.controller.handle_paste(event.text)
        event.stop()
        self.refresh_body()

    def render_body(self) -> Text:
        c = self.controller
        text = Text()
        for tab, title in ((SettingsTab.SCHEDULE, "Schedule"), (SettingsTab.CONNECTIONS, "Connections")):
            style = f"bold reverse {COLORS['header']}" if c.tab is tab else "dim"
            text.append(f" {title} ", style=style)
            text.append(" ")
        text.append("  [,/.] Switch\n\n", style="dim")

        if c.in_input_mode:
            self._render_input(text)
        elif c.tab is SettingsTab.SCHEDULE:
            text.append_text(schedule_lines(c.schedule, c.editor.field, c.editor.cursor))
            text.append(f"\nTotal: {format_total_hours(c.editor.total_hours())}\n\n", style="bold")
            text.append("[Tab] Field  [←→] Digit  [↑↓] Change  [Enter] Save  [Esc] Close", style="dim")
        else:
            for name, title in (("bamboohr", "BambooHR"), ("gmail", "Gmail")):
                status = c.connections[name]
                marker = "> " if c.selected_connection == name else "  "
                text.append(marker, style=f"bold {COLORS['selected']}")
                text.append(f"{title:<10}", style="bold")
                if status.configured:
                    text.append(f"configured  {status.detail or ''}\n", style=COLORS["hasHours"])
                else:
                    text.append("not configured\n", style=COLORS["missing"])
            text.append("\n[↑↓] Select  [Enter] Reconfigure  [Esc] Close", style="dim")

        if c.error:
            text.append(f"\n\n{c.error}", style=f"bold {COLORS['missing']}")
        if c.saving:
            text.append("\n\nSaving...", style="dim")
        return text

    def _render_input(self, text: Text) -> None:
        c = self.controller
        text.append(f"{c.input_label}\n", style="dim")
        value = c.input_value
        if c.input_mode in (InputMode.BAMBOOHR_APIKEY, InputMode.MAIL_PASSWORD):
            value = "*" * len(value)
        if value:
            text.append(f"{value}█\n\n")
        else:
            text.append(f"{c.input_placeholder or ''}█\n\n", style="dim")
        text.append("[Enter] Confirm  [Esc] Cancel", style="dim")
