#!/usr/bin/env python3
"""Clocker TUI application."""

from __future__ import annotations

import asyncio
import logging
import os
import webbrowser
from datetime import date

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Static, Footer

import mailer
import storage
from client import BambooHRClient
from controllers import (
    BulkSubmitController,
    DayViewController,
    DialogGuard,
    EditController,
    SettingsController,
    SettingsTab,
)
from editor import TimeFieldEditor
from errors import ClockerError, CredentialError
from models import Employee, MailConfig, MonthFeeds
from reconcile import DayIndex, day_info, find_missing_days
from schedule import extract_schedule, total_hours
from screens import BulkSubmitScreen, DayScreen, EditScreen, SettingsScreen
from utils import find_next_weekday, initial_weekday, is_future_month, shift_month, step_week
from widgets import CalendarGrid, CalendarLegend, EmployeeSidebar, MonthHeader

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# Actions that read or write the displayed month's feeds
FEED_ACTIONS = {"view_day", "edit_day", "submit_missing"}


class ClockerApp(App):
    """Calendar of recorded time with missing-day submission."""

    CSS = """
    Screen {
        background: $surface;
    }

    #sidebar {
        width: 28;
        height: 100%;
        padding: 1;
        border: round $secondary;
    }

    #main {
        width: 1fr;
        height: 100%;
    }

    #month-header {
        height: 3;
        padding: 0 1;
        border: round #67e8f9;
    }

    #calendar {
        height: 1fr;
    }

    #legend {
        height: auto;
        margin-top: 1;
    }

    #error-view {
        height: 1fr;
        padding: 2 4;
        color: $error;
    }

    .hidden {
        display: none;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("left", "prev_day", "◄", show=False),
        Binding("right", "next_day", "►", show=False),
        Binding("up", "prev_week", "▲", show=False),
        Binding("down", "next_week", "▼", show=False),
        Binding("p,left_square_bracket", "prev_month", "Prev"),
        Binding("n,right_square_bracket", "next_month", "Next"),
        Binding("enter", "view_day", "View"),
        Binding("e", "edit_day", "Edit"),
        Binding("s", "submit_missing", "Submit"),
        Binding("c", "settings", "Config"),
    ]

    def __init__(self, client: BambooHRClient | None = None, today: date | None = None):
        super().__init__()
        storage.init_db()
        self.client = client

        self.today = today or date.today()
        self.current_year = self.today.year
        self.current_month = self.today.month
        self.selected_day = initial_weekday(self.current_year, self.current_month, self.today.day)

        self.schedule = storage.load_settings()
        self.employee: Employee | None = None
        self.feeds = MonthFeeds()
        self.index = DayIndex()
        self.loading = False
        # Feeds match the displayed month only after a load completes
        self.loaded = False
        self.fatal_error: str | None = None

        # One modal at a time
        self.guard = DialogGuard()

    @property
    def selected_date(self) -> date:
        return date(self.current_year, self.current_month, self.selected_day)

    def compose(self) -> ComposeResult:
        with Horizontal(id="body"):
            yield EmployeeSidebar(id="sidebar")
            with Vertical(id="main"):
                yield MonthHeader(self.current_year, self.current_month, id="month-header")
                yield CalendarGrid(id="calendar")
                yield CalendarLegend(id="legend")
        yield Static(id="error-view", classes="hidden")
        yield Footer()

    def on_mount(self):
        self._refresh_display()
        if self.client is None:
            self.action_settings(tab=SettingsTab.CONNECTIONS)
        else:
            self.load_month()

    async def on_unmount(self) -> None:
        if self.client is not None:
            await self.client.aclose()

    # --- Data loading ---

    @work(exclusive=True, group="load")
    async def load_month(self) -> None:
        """Fetch the employee once, then the displayed month's feeds."""
        if self.client is None:
            return
        self.loading = True
        self._refresh_display()
        try:
            if self.employee is None:
                self.employee = await self.client.get_employee()
            feeds = await self.client.fetch_month_feeds(self.current_year, self.current_month)
        except ClockerError as e:
            logger.error("Loading %d-%02d failed: %s", self.current_year, self.current_month, e)
            self.fatal_error = str(e)
            return
        finally:
            self.loading = False
            self._refresh_display()
            self.refresh_bindings()

        self._set_feeds(feeds)

    def _set_feeds(self, feeds: MonthFeeds) -> None:
        self.feeds = feeds
        self.loaded = True
        self.index = DayIndex.build(feeds)
        self._refresh_display()

    @property
    def feeds_ready(self) -> bool:
        """True when the displayed month has been loaded and can be written to."""
        return self.client is not None and self.loaded and not self.loading

    def _require_client(self) -> BambooHRClient:
        if self.client is None:
            raise CredentialError("BambooHR is not configured")
        return self.client

    async def _reload_missing(self) -> list[date]:
        """Refetch the month and recompute its missing days."""
        client = self._require_client()
        feeds = await client.fetch_month_feeds(self.current_year, self.current_month)
        self._set_feeds(feeds)
        return find_missing_days(self.current_year, self.current_month, feeds, today=self.today)

    async def _write_span(self, day: date, start: str, end: str) -> None:
        await self._require_client().store_clock_entry(day, start, end)

    async def _verify_mail(self, config: MailConfig) -> None:
        await asyncio.to_thread(mailer.verify_mail_credentials, config)

    # --- Display ---

    def _refresh_display(self):
        error_view = self.query_one("#error-view", Static)
        body = self.query_one("#body", Horizontal)
        if self.fatal_error:
            body.add_class("hidden")
            error_view.remove_class("hidden")
            error_view.update(f"Error: {self.fatal_error}\n\nPress q to quit.")
            self.refresh_bindings()
            return

        header = self.query_one("#month-header", MonthHeader)
        header.year = self.current_year
        header.month = self.current_month
        header.update_display(loading=self.loading)

        self.query_one("#sidebar", EmployeeSidebar).update_display(self.employee)
        self.query_one("#calendar", CalendarGrid).update_display(
            self.current_year, self.current_month, self.index, self.selected_day, self.today
        )

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Only quit is available with a dialog open or after a fatal error."""
        if action == "quit":
            # Typing into a settings field must not quit
            top = self.screen_stack[-1] if self.screen_stack else None
            return not getattr(top, "captures_text", False)
        if self.fatal_error or self.guard.is_open:
            return False
        if action in FEED_ACTIONS:
            return self.feeds_ready
        return True

    # --- Navigation ---

    def action_prev_day(self):
        self.selected_day = find_next_weekday(self.current_year, self.current_month, self.selected_day, -1)
        self._refresh_display()

    def action_next_day(self):
        self.selected_day = find_next_weekday(self.current_year, self.current_month, self.selected_day, 1)
        self._refresh_display()

    def action_prev_week(self):
        self.selected_day = step_week(self.current_year, self.current_month, self.selected_day, -1)
        self._refresh_display()

    def action_next_week(self):
        self.selected_day = step_week(self.current_year, self.current_month, self.selected_day, 1)
        self._refresh_display()

    def _navigate_to_month(self, delta: int):
        self.current_year, self.current_month = shift_month(self.current_year, self.current_month, delta)
        self.selected_day = initial_weekday(self.current_year, self.current_month, 1)
        # Feeds belong to the month they were fetched for
        self.feeds = MonthFeeds()
        self.index = DayIndex()
        self.loaded = False
        self._refresh_display()
        self.load_month()

    def action_prev_month(self):
        self._navigate_to_month(-1)

    def action_next_month(self):
        self._navigate_to_month(1)

    # --- Modals ---

    def _open_modal(self, owner: str, screen, callback=None) -> bool:
        """Push a modal if no other one is open; the guard is released on dismiss."""
        if not self.guard.acquire(owner):
            logger.debug("Not opening %s, %s is already open", owner, self.guard.owner)
            return False

        def on_close(result) -> None:
            self.guard.release(owner)
            self.refresh_bindings()
            if callback:
                callback(result)

        self.push_screen(screen, on_close)
        self.refresh_bindings()
        return True

    def _day_entries(self, d: date):
        return [e for e in self.feeds.entries if e.date == d]

    def action_view_day(self):
        if not self.feeds_ready:
            return
        d = self.selected_date
        controller = DayViewController(d, day_info(d, self.feeds), self._day_entries(d))
        self._open_modal("day", DayScreen(controller), self._on_day_closed)

    def _on_day_closed(self, result: str | None) -> None:
        if result == "edit":
            # The viewer has released the guard by now
            self.call_later(self.action_edit_day)

    def action_edit_day(self):
        """Open the editor, or the read-only viewer for holidays and time off."""
        if not self.feeds_ready:
            return
        d = self.selected_date
        if not day_info(d, self.feeds).editable:
            self.action_view_day()
            return

        editor = TimeFieldEditor(extract_schedule(self._day_entries(d), self.schedule))
        controller = EditController(d, editor, is_future_month(self.current_year, self.current_month, self.today))
        self._open_modal("edit", EditScreen(controller, self._write_span), self._on_edit_complete)

    def _on_edit_complete(self, saved: bool | None) -> None:
        if saved:
            self.notify(f"Saved {self.selected_date.strftime('%b %d')}")
            self.load_month()

    def action_submit_missing(self):
        if not self.feeds_ready:
            return
        missing = find_missing_days(self.current_year, self.current_month, self.feeds, today=self.today)
        controller = BulkSubmitController(
            missing,
            total_hours(self.schedule),
            is_future_month(self.current_year, self.current_month, self.today),
        )
        screen = BulkSubmitScreen(controller, self.schedule, self._write_span, self._reload_missing)
        self._open_modal("bulk", screen, self._on_bulk_complete)

    def _on_bulk_complete(self, submitted: int | None) -> None:
        if submitted:
            self.notify(f"Submitted {submitted} day(s)")
            self.load_month()

    def action_settings(self, tab: SettingsTab = SettingsTab.SCHEDULE):
        controller = SettingsController(
            storage.load_settings(),
            storage.load_credentials(),
            storage.load_mail_config(),
            self.employee.work_email if self.employee else None,
            open_url=webbrowser.open,
        )
        controller.tab = tab
        screen = SettingsScreen(
            controller,
            save_schedule=storage.save_settings,
            save_credentials=storage.save_credentials,
            verify_mail=self._verify_mail,
            save_mail=storage.save_mail_config,
        )
        self._open_modal("settings", screen, lambda changed: self._on_settings_closed(controller, changed))

    def _on_settings_closed(self, controller: SettingsController, changed: bool | None) -> None:
        if not changed:
            return
        self.schedule = storage.load_settings()
        if controller.credentials_changed:
            credentials = storage.load_credentials()
            if credentials is not None:
                old = self.client
                self.client = BambooHRClient(credentials)
                self.employee = None
                self.fatal_error = None
                self.loaded = False
                if old is not None:
                    self.run_worker(old.aclose())
                self.load_month()
        self._refresh_display()

    async def action_quit(self) -> None:
        # Closing with a dialog open still gives the permit back
        self.guard.release()
        self.exit()


def configure_logging():
    """Log to a file in the config directory; the terminal belongs to the UI."""
    level = os.environ.get("CLOCKER_LOG_LEVEL", "INFO").upper()
    storage.CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(storage.CONFIG_DIR / "clocker.log", encoding="utf-8")],
    )


def main():
    import sys
    if len(sys.argv) > 1 and sys.argv[1] == "--db-info":
        from datetime import datetime
        db_path = storage.DB_PATH
        print(f"Database: {db_path}")
        if db_path.exists():
            mtime = datetime.fromtimestamp(db_path.stat().st_mtime)
            size = db_path.stat().st_size
            print(f"Modified: {mtime.strftime('%Y-%m-%d %H:%M:%S')}")
            print(f"Size: {size:,} bytes")
        else:
            print("Status: Does not exist (will be created on first run)")
        return

    configure_logging()
    storage.init_db()

    if len(sys.argv) > 1 and sys.argv[1] == "--submit":
        import cli
        sys.exit(asyncio.run(cli.run_submit()))

    credentials = storage.load_credentials()
    app = ClockerApp(BambooHRClient(credentials) if credentials else None)
    app.run()


if __name__ == "__main__":
    main()
