"""Tests for the app module."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, PropertyMock, patch

import pytest

import storage
from controllers import SettingsTab
from factories import holiday, hour_entry
from models import Credentials, MonthFeeds, TimeSpan, WorkSchedule
from screens import BulkSubmitScreen, DayScreen, EditScreen, SettingsScreen

TODAY = date(2026, 1, 20)


@pytest.fixture
def app(clean_db):
    """ClockerApp with the parts that need a running event loop stubbed out."""
    from app import ClockerApp

    with patch.object(ClockerApp, 'run'):
        instance = ClockerApp(client=MagicMock(), today=TODAY)
        instance._refresh_display = MagicMock()
        instance.load_month = MagicMock()
        instance.push_screen = MagicMock()
        instance.refresh_bindings = MagicMock()
        instance.notify = MagicMock()
        instance.call_later = MagicMock()
        instance._set_feeds(MonthFeeds())
        yield instance


def pushed(app):
    """The screen and dismiss callback of the last push_screen call."""
    screen, callback = app.push_screen.call_args[0]
    return screen, callback


class TestInit:
    """Tests for ClockerApp initialisation."""

    def test_starts_on_today(self, app):
        assert (app.current_year, app.current_month) == (2026, 1)
        assert app.selected_day == 20

    def test_weekend_today_selects_weekday(self, clean_db):
        from app import ClockerApp

        with patch.object(ClockerApp, 'run'):
            instance = ClockerApp(client=MagicMock(), today=date(2026, 1, 17))
        assert instance.selected_day == 19

    def test_loads_saved_schedule(self, clean_db):
        from app import ClockerApp

        schedule = WorkSchedule(TimeSpan("08:00", "12:00"), TimeSpan("13:00", "16:00"))
        storage.save_settings(schedule)
        with patch.object(ClockerApp, 'run'):
            instance = ClockerApp(client=MagicMock(), today=TODAY)
        assert instance.schedule == schedule


class TestNavigation:
    """Tests for day, week and month navigation."""

    def test_day_steps_skip_weekend(self, app):
        app.selected_day = 16  # Friday
        app.action_next_day()
        assert app.selected_day == 19
        app.action_prev_day()
        assert app.selected_day == 16

    def test_week_steps(self, app):
        app.action_next_week()
        assert app.selected_day == 27
        app.action_prev_week()
        assert app.selected_day == 20

    def test_next_month_resets_feeds_and_reloads(self, app):
        app._set_feeds(MonthFeeds(entries=[hour_entry(TODAY)]))

        app.action_next_month()

        assert (app.current_year, app.current_month) == (2026, 2)
        assert app.selected_day == 2  # Feb 1, 2026 is a Sunday
        assert app.feeds == MonthFeeds()
        assert app.index.hours == {}
        app.load_month.assert_called_once()

    def test_prev_month_rolls_year(self, app):
        app.action_prev_month()
        assert (app.current_year, app.current_month) == (2025, 12)
        assert app.selected_day == 1


class TestCheckAction:
    """Tests for binding availability."""

    def test_all_available_normally(self, app):
        assert app.check_action("next_month", ())
        assert app.check_action("submit_missing", ())

    def test_only_quit_with_dialog_open(self, app):
        app.guard.acquire("edit")
        assert not app.check_action("next_month", ())
        with patch.object(type(app), "screen_stack", new_callable=PropertyMock, return_value=[]):
            assert app.check_action("quit", ())

    def test_only_quit_after_fatal_error(self, app):
        app.fatal_error = "BambooHR rejected the credentials (401)"
        assert not app.check_action("view_day", ())

    def test_quit_disabled_while_typing(self, app):
        typing = MagicMock(captures_text=True)
        with patch.object(type(app), "screen_stack", new_callable=PropertyMock, return_value=[typing]):
            assert not app.check_action("quit", ())


class TestFeedGating:
    """Tests for keeping day actions away from unloaded feeds."""

    def test_no_client_disables_day_actions(self, clean_db):
        from app import ClockerApp

        with patch.object(ClockerApp, 'run'):
            instance = ClockerApp(client=None, today=TODAY)
        instance.push_screen = MagicMock()
        instance.refresh_bindings = MagicMock()

        for action in ("view_day", "edit_day", "submit_missing"):
            assert not instance.check_action(action, ())
        instance.action_submit_missing()
        instance.push_screen.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_without_client_is_a_clocker_error(self, app):
        from errors import CredentialError

        app.client = None
        with pytest.raises(CredentialError):
            await app._write_span(TODAY, "09:00", "12:00")
        with pytest.raises(CredentialError):
            await app._reload_missing()

    def test_month_change_disables_until_loaded(self, app):
        app.action_prev_month()

        assert not app.check_action("submit_missing", ())
        assert not app.check_action("edit_day", ())
        assert app.check_action("next_month", ())
        app.action_submit_missing()
        app.push_screen.assert_not_called()

        app._set_feeds(MonthFeeds(entries=[hour_entry(date(2025, 12, 1))]))
        assert app.check_action("submit_missing", ())

    def test_disabled_while_loading(self, app):
        app.loading = True
        assert not app.check_action("view_day", ())
        app.action_edit_day()
        app.push_screen.assert_not_called()

    def test_settings_still_available_without_feeds(self, app):
        app.loaded = False
        assert app.check_action("settings", ())


class TestModals:
    """Tests for opening dialogs one at a time."""

    def test_view_day(self, app):
        app.action_view_day()

        screen, _ = pushed(app)
        assert isinstance(screen, DayScreen)
        assert screen.controller.day == TODAY
        assert app.guard.owner == "day"

    def test_second_modal_refused(self, app):
        app.action_view_day()
        app.action_submit_missing()
        assert app.push_screen.call_count == 1

    def test_dismiss_releases_guard(self, app):
        app.action_view_day()
        _, callback = pushed(app)

        callback(None)

        assert not app.guard.is_open
        app.call_later.assert_not_called()

    def test_day_view_hands_off_to_editor(self, app):
        app.action_view_day()
        _, callback = pushed(app)

        callback("edit")

        assert not app.guard.is_open
        app.call_later.assert_called_once_with(app.action_edit_day)

    def test_edit_day_opens_editor(self, app):
        app.action_edit_day()

        screen, _ = pushed(app)
        assert isinstance(screen, EditScreen)
        assert screen.controller.editor.schedule == app.schedule
        assert not screen.controller.future_month

    def test_edit_holiday_opens_viewer(self, app):
        app._set_feeds(MonthFeeds(holidays=[holiday("Company Day", TODAY)]))

        app.action_edit_day()

        screen, _ = pushed(app)
        assert isinstance(screen, DayScreen)

    def test_edit_saved_reloads(self, app):
        app.action_edit_day()
        _, callback = pushed(app)

        callback(True)

        app.load_month.assert_called_once()
        app.notify.assert_called_once_with("Saved Jan 20")

    def test_submit_missing_uses_schedule_hours(self, app):
        app._set_feeds(MonthFeeds(entries=[hour_entry(date(2026, 1, d), entry_id=d) for d in range(1, 17)]))

        app.action_submit_missing()

        screen, _ = pushed(app)
        assert isinstance(screen, BulkSubmitScreen)
        # Jan 19 through Jan 30 are missing, including future days
        assert len(screen.controller.missing_days) == 10
        assert screen.controller.hours_per_day == 7

    def test_bulk_nothing_submitted_does_not_reload(self, app):
        app.action_submit_missing()
        _, callback = pushed(app)
        callback(0)
        app.load_month.assert_not_called()

    def test_settings_on_connections_tab(self, app):
        app.action_settings(tab=SettingsTab.CONNECTIONS)

        screen, _ = pushed(app)
        assert isinstance(screen, SettingsScreen)
        assert screen.controller.tab is SettingsTab.CONNECTIONS

    def test_settings_new_credentials_rebuild_client(self, app):
        old_client = app.client
        app.fatal_error = "rejected"
        app.run_worker = MagicMock()
        app.action_settings()
        screen, callback = pushed(app)

        storage.save_credentials(Credentials("newco", "key"))
        screen.controller.credentials_changed = True
        with patch("app.BambooHRClient") as client_cls:
            callback(True)

        assert app.client is client_cls.return_value
        assert app.fatal_error is None
        app.run_worker.assert_called_once()
        old_client.aclose.assert_called_once()
        app.load_month.assert_called_once()

    @pytest.mark.asyncio
    async def test_quit_releases_guard(self, app):
        app.exit = MagicMock()
        app.action_settings()

        await app.action_quit()

        assert not app.guard.is_open
        app.exit.assert_called_once()


class TestMain:
    """Tests for the command-line entry point."""

    def test_db_info(self, capsys, monkeypatch):
        from app import main

        monkeypatch.setattr("sys.argv", ["clocker", "--db-info"])
        main()

        assert f"Database: {storage.DB_PATH}" in capsys.readouterr().out

    def test_submit_exit_code(self, clean_db, monkeypatch):
        from app import main

        monkeypatch.setattr("sys.argv", ["clocker", "--submit"])
        with patch("app.configure_logging"), \
                patch("cli.run_submit", new=MagicMock(return_value=None)), \
                patch("app.asyncio.run", return_value=1):
            with pytest.raises(SystemExit) as excinfo:
                main()

        assert excinfo.value.code == 1

    def test_runs_app_without_credentials(self, clean_db, monkeypatch):
        from app import ClockerApp, main

        monkeypatch.setattr("sys.argv", ["clocker"])
        with patch("app.configure_logging"), patch.object(ClockerApp, 'run') as run:
            main()

        run.assert_called_once()
