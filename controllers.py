"""Keyboard-driven state machines behind the modal screens.

Controllers know nothing about Textual: screens translate key events into
KeyPress values, hand them over, and act on the returned command string.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable

from editor import TimeFieldEditor
from errors import ClockerError, CredentialError, ValidationError
from models import Credentials, MailConfig, TimesheetEntry, WorkSchedule
from reconcile import DayInfo

logger = logging.getLogger(__name__)

WriteSpan = Callable[[date, str, str], Awaitable[None]]

MAX_DAY_HOURS = Decimal("24")
APP_PASSWORD_LENGTH = 16

BAMBOOHR_API_URL = "https://{domain}.bamboohr.com/settings/permissions/api.php"
GMAIL_APP_PASSWORDS_URL = "https://myaccount.google.com/apppasswords"


@dataclass(frozen=True)
class KeyPress:
    name: str
    character: str | None = None
    shift: bool = False


class DialogGuard:
    """Single permit shared by every modal: at most one is open."""

    def __init__(self):
        self._owner: str | None = None

    @property
    def is_open(self) -> bool:
        return self._owner is not None

    @property
    def owner(self) -> str | None:
        return self._owner

    def acquire(self, owner: str) -> bool:
        if self._owner is not None:
            return False
        self._owner = owner
        return True

    def release(self, owner: str | None = None) -> None:
        """Release the permit. Releasing twice, or for another owner, is a no-op."""
        if owner is None or owner == self._owner:
            self._owner = None


class BulkSubmitError(ClockerError):
    """A day in a sequential submission failed."""

    def __init__(self, completed: int, failed_day: date, cause: Exception):
        super().__init__(str(cause))
        self.completed = completed
        self.failed_day = failed_day
        self.cause = cause


async def submit_day(day: date, schedule: WorkSchedule, write_span: WriteSpan) -> None:
    """Write the morning span, then the afternoon span."""
    for span in schedule.spans():
        await write_span(day, span.start, span.end)


async def submit_days(
    days: list[date],
    schedule: WorkSchedule,
    write_span: WriteSpan,
    on_progress: Callable[[int, date], None] | None = None,
) -> int:
    """Submit days one after another, stopping at the first failure.

    Days already written stay written; nothing is rolled back.
    """
    for i, day in enumerate(days):
        try:
            await submit_day(day, schedule, write_span)
        except ClockerError as e:
            logger.error("Submission failed on %s after %d day(s): %s", day, i, e)
            raise BulkSubmitError(i, day, e) from e
        if on_progress:
            on_progress(i + 1, day)
    return len(days)


class DayViewController:
    def __init__(self, day: date, info: DayInfo, entries: list[TimesheetEntry]):
        self.day = day
        self.info = info
        self.entries = entries

    @property
    def total_hours(self) -> Decimal:
        return sum((e.hours or Decimal("0") for e in self.entries), Decimal("0"))

    def handle_key(self, key: KeyPress) -> str | None:
        if key.name in ("return", "escape"):
            return "close"
        if key.name == "q":
            return "quit"
        # Read-only days must not bounce back into the viewer
        if key.name == "e" and self.info.editable:
            return "edit"
        return None


class EditController:
    """Single-day edit: four time fields, saved as two spans."""

    def __init__(self, day: date, editor: TimeFieldEditor, future_month: bool = False):
        self.day = day
        self.editor = editor
        self.future_month = future_month
        self.saving = False
        self.error: str | None = None

    def handle_key(self, key: KeyPress) -> str | None:
        if self.saving:
            return None
        if key.name == "escape":
            return "close"
        if key.name == "q":
            return "quit"
        if self.future_month:
            return None
        if key.name == "return":
            return "save"
        updated = self.editor.handle_key(key.name, key.shift)
        if updated is not None:
            self.editor = updated
            self.error = None
        return None

    def validate(self) -> Decimal:
        hours = self.editor.total_hours()
        if hours < 0 or hours > MAX_DAY_HOURS:
            raise ValidationError("Invalid hours (0-24)")
        return hours

    async def save(self, write_span: WriteSpan) -> bool:
        try:
            self.validate()
        except ValidationError as e:
            self.error = str(e)
            return False

        self.saving = True
        self.error = None
        try:
            await submit_day(self.day, self.editor.schedule, write_span)
        except ClockerError as e:
            logger.error("Saving %s failed: %s", self.day, e)
            self.error = str(e) or "Save failed"
            return False
        finally:
            self.saving = False
        return True


class BulkPhase(str, Enum):
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


class BulkSubmitController:
    def __init__(self, missing_days: list[date], hours_per_day: Decimal, future_month: bool = False):
        self.missing_days = list(missing_days)
        self.hours_per_day = hours_per_day
        self.future_month = future_month
        self.phase = BulkPhase.CONFIRMING
        self.progress = 0
        self.submitted = 0
        self.error: str | None = None

    @property
    def total_hours(self) -> Decimal:
        return self.hours_per_day * len(self.missing_days)

    @property
    def saving(self) -> bool:
        return self.phase is BulkPhase.SUBMITTING

    @property
    def can_submit(self) -> bool:
        return (
            self.phase is BulkPhase.CONFIRMING
            and bool(self.missing_days)
            and not self.future_month
        )

    def handle_key(self, key: KeyPress) -> str | None:
        if self.saving:
            return None
        if key.name == "escape":
            return "close"
        if key.name == "q":
            return "quit"
        if key.name == "return":
            if self.phase is BulkPhase.FAILED:
                return "retry"
            if self.phase is BulkPhase.DONE:
                return "close"
            if self.can_submit:
                return "submit"
        return None

    async def submit(
        self,
        schedule: WorkSchedule,
        write_span: WriteSpan,
        on_progress: Callable[[int, date], None] | None = None,
    ) -> bool:
        """Write every missing day in order; False when a day failed."""
        if not self.can_submit:
            return False
        self.phase = BulkPhase.SUBMITTING
        self.progress = 0
        self.error = None

        def _progress(done: int, day: date) -> None:
            self.progress = done
            self.submitted += 1
            if on_progress:
                on_progress(done, day)

        try:
            await submit_days(self.missing_days, schedule, write_span, _progress)
        except BulkSubmitError as e:
            self.phase = BulkPhase.FAILED
            self.error = f"{e.failed_day.isoformat()}: {e}"
            return False
        self.phase = BulkPhase.DONE
        return True

    def retry(self, missing_days: list[date]) -> None:
        """Start over with a freshly recomputed list of missing days."""
        self.missing_days = list(missing_days)
        self.phase = BulkPhase.CONFIRMING
        self.progress = 0
        self.error = None


class SettingsTab(str, Enum):
    SCHEDULE = "schedule"
    CONNECTIONS = "connections"


class InputMode(str, Enum):
    NONE = "none"
    BAMBOOHR_DOMAIN = "bamboohr_domain"
    BAMBOOHR_APIKEY = "bamboohr_apikey"
    MAIL_PASSWORD = "mail_password"


CONNECTIONS = ["bamboohr", "gmail"]


@dataclass
class ConnectionStatus:
    configured: bool = False
    detail: str | None = None


class SettingsController:
    """Schedule and connection settings with a nested raw text input mode."""

    def __init__(
        self,
        schedule: WorkSchedule,
        credentials: Credentials | None,
        mail_config: MailConfig | None,
        employee_email: str | None,
        open_url: Callable[[str], object] | None = None,
    ):
        self.tab = SettingsTab.SCHEDULE
        self.editor = TimeFieldEditor(schedule)
        self.connections = {
            "bamboohr": ConnectionStatus(credentials is not None, credentials.company_domain if credentials else None),
            "gmail": ConnectionStatus(mail_config is not None, mail_config.email if mail_config else None),
        }
        self.selected_connection = "bamboohr"
        self.employee_email = employee_email
        self.open_url = open_url or (lambda url: None)

        self.input_mode = InputMode.NONE
        self.input_value = ""
        self.input_label = ""
        self.input_placeholder: str | None = None
        self.pending_domain = ""

        self.saving = False
        self.error: str | None = None
        self.credentials_changed = False

    @property
    def in_input_mode(self) -> bool:
        return self.input_mode is not InputMode.NONE

    @property
    def schedule(self) -> WorkSchedule:
        return self.editor.schedule

    def start_input(self, mode: InputMode, label: str, placeholder: str | None = None) -> None:
        self.input_mode = mode
        self.input_value = ""
        self.input_label = label
        self.input_placeholder = placeholder
        self.error = None

    def cancel_input(self) -> None:
        self.input_mode = InputMode.NONE
        self.input_value = ""
        self.input_label = ""
        self.input_placeholder = None
        self.pending_domain = ""

    def start_reconfigure(self) -> None:
        if self.selected_connection == "bamboohr":
            self.start_input(InputMode.BAMBOOHR_DOMAIN, "Company Domain")
        else:
            self.open_url(GMAIL_APP_PASSWORDS_URL)
            placeholder = None
            if self.connections["gmail"].configured:
                placeholder = "(Replace your current app password)"
            self.start_input(InputMode.MAIL_PASSWORD, "App Password", placeholder)

    def _select_connection(self, delta: int) -> None:
        idx = CONNECTIONS.index(self.selected_connection)
        self.selected_connection = CONNECTIONS[(idx + delta) % len(CONNECTIONS)]

    def handle_key(self, key: KeyPress) -> str | None:
        if self.saving:
            return None

        if self.in_input_mode:
            if key.name == "escape":
                self.cancel_input()
            elif key.name == "return":
                return "confirm_input"
            elif key.name == "backspace":
                self.input_value = self.input_value[:-1]
            elif key.character and key.character.isprintable():
                self.input_value += key.character
            # everything else is swallowed while typing
            return None

        if key.name == "escape":
            return "close"
        if key.name == "q":
            return "quit"
        if key.name in (",", "<"):
            self.tab = SettingsTab.SCHEDULE
            return None
        if key.name in (".", ">"):
            self.tab = SettingsTab.CONNECTIONS
            return None

        if self.tab is SettingsTab.SCHEDULE:
            if key.name == "return":
                return "save_schedule"
            updated = self.editor.handle_key(key.name, key.shift)
            if updated is not None:
                self.editor = updated
            return None

        if key.name == "up":
            self._select_connection(-1)
        elif key.name == "down":
            self._select_connection(1)
        elif key.name == "return":
            self.start_reconfigure()
        return None

    def handle_paste(self, text: str) -> None:
        if not self.in_input_mode or self.saving:
            return
        if self.input_mode is InputMode.MAIL_PASSWORD:
            text = "".join(text.split())
        self.input_value += text

    def save_schedule(self, save: Callable[[WorkSchedule], None]) -> bool:
        self.saving = True
        self.error = None
        try:
            save(self.schedule)
        except (OSError, sqlite3.Error) as e:
            logger.error("Saving settings failed: %s", e)
            self.error = str(e) or "Save failed"
            return False
        finally:
            self.saving = False
        return True

    async def confirm_input(
        self,
        save_credentials: Callable[[Credentials], None],
        verify_mail: Callable[[MailConfig], Awaitable[None]],
        save_mail: Callable[[MailConfig], None],
    ) -> bool:
        """Submit the current input value. Returns True when a connection was saved."""
        value = self.input_value.strip()
        if not value:
            self.error = "Value cannot be empty"
            return False

        if self.input_mode is InputMode.BAMBOOHR_DOMAIN:
            self.pending_domain = value
            self.start_input(InputMode.BAMBOOHR_APIKEY, "API Key")
            self.open_url(BAMBOOHR_API_URL.format(domain=value))
            return False

        if self.input_mode is InputMode.BAMBOOHR_APIKEY:
            credentials = Credentials(company_domain=self.pending_domain, api_key=value)
            self.saving = True
            try:
                save_credentials(credentials)
            except (OSError, sqlite3.Error) as e:
                self.error = str(e) or "Save failed"
                return False
            finally:
                self.saving = False
            self.connections["bamboohr"] = ConnectionStatus(True, credentials.company_domain)
            self.credentials_changed = True
            self.cancel_input()
            return True

        if self.input_mode is InputMode.MAIL_PASSWORD:
            password = "".join(value.split())
            if len(password) != APP_PASSWORD_LENGTH:
                self.error = f"App password must be 16 characters (got {len(password)})"
                return False
            if not self.employee_email:
                self.error = "Employee email not available"
                return False

            config = MailConfig(email=self.employee_email, app_password=password)
            self.saving = True
            try:
                await verify_mail(config)
            except ClockerError as e:
                logger.warning("Mail verification failed: %s", e)
                self.error = "Invalid credentials - could not connect to Gmail"
                self.saving = False
                return False

            try:
                save_mail(config)
            except (OSError, sqlite3.Error) as e:
                self.error = str(e) or "Save failed"
                return False
            finally:
                self.saving = False
            self.connections["gmail"] = ConnectionStatus(True, config.email)
            self.cancel_input()
            return True

        return False


def require_email(email: str | None) -> str:
    if not email:
        raise CredentialError("Employee email not available")
    return email
