"""Tests for editor.py - digit-level editing of schedule times."""

import pytest

from editor import FIELD_ORDER, TimeFieldEditor, adjust_time_digit
from models import DEFAULT_SCHEDULE, EditField


class TestAdjustTimeDigit:
    """Tests for single-digit adjustment with wrapping."""

    @pytest.mark.parametrize(
        "value, position, delta, expected",
        [
            ("09:00", 0, 1, "19:00"),
            ("19:00", 0, 1, "09:00"),
            ("13:00", 0, 1, "23:00"),
            ("23:00", 0, 1, "03:00"),
            ("03:00", 0, -1, "23:00"),
            ("09:00", 1, 1, "10:00"),
            ("23:00", 1, 1, "00:00"),
            ("00:00", 1, -1, "23:00"),
            ("09:50", 2, 1, "09:00"),
            ("09:05", 2, -1, "09:55"),
            ("09:59", 3, 1, "09:00"),
            ("09:00", 3, -1, "09:59"),
            ("09:09", 3, 1, "09:10"),
        ],
    )
    def test_adjust(self, value, position, delta, expected):
        assert adjust_time_digit(value, position, delta) == expected

    @pytest.mark.parametrize("position", range(4))
    def test_up_then_down_restores(self, position):
        for value in ("00:00", "09:45", "13:59", "19:30", "23:59"):
            up = adjust_time_digit(value, position, 1)
            assert adjust_time_digit(up, position, -1) == value

    @pytest.mark.parametrize("position", range(4))
    def test_results_always_valid(self, position):
        value = "00:00"
        for _ in range(100):
            value = adjust_time_digit(value, position, 1)
            hours, minutes = value.split(":")
            assert 0 <= int(hours) <= 23
            assert 0 <= int(minutes) <= 59


class TestTimeFieldEditor:
    """Tests for field and cursor navigation."""

    def test_initial_state(self):
        editor = TimeFieldEditor(DEFAULT_SCHEDULE)
        assert editor.field == EditField.MORNING_START
        assert editor.cursor == 0
        assert editor.value == "09:00"

    def test_tab_cycles_forward_and_wraps(self):
        editor = TimeFieldEditor(DEFAULT_SCHEDULE)
        seen = []
        for _ in range(len(FIELD_ORDER)):
            seen.append(editor.field)
            editor = editor.handle_key("tab")
        assert seen == FIELD_ORDER
        assert editor.field == EditField.MORNING_START

    def test_shift_tab_cycles_backward(self):
        editor = TimeFieldEditor(DEFAULT_SCHEDULE).handle_key("tab", shift=True)
        assert editor.field == EditField.AFTERNOON_END

    def test_tab_resets_cursor(self):
        editor = TimeFieldEditor(DEFAULT_SCHEDULE, cursor=3).handle_key("tab")
        assert editor.cursor == 0

    def test_cursor_clamped(self):
        editor = TimeFieldEditor(DEFAULT_SCHEDULE)
        assert editor.handle_key("left").cursor == 0
        for _ in range(6):
            editor = editor.handle_key("right")
        assert editor.cursor == 3

    def test_up_adjusts_active_field_only(self):
        editor = TimeFieldEditor(DEFAULT_SCHEDULE, field=EditField.AFTERNOON_END, cursor=1)
        editor = editor.handle_key("up")

        assert editor.value == "19:00"
        assert editor.schedule.morning == DEFAULT_SCHEDULE.morning
        assert editor.schedule.afternoon.start == "14:00"

    def test_down_adjusts(self):
        editor = TimeFieldEditor(DEFAULT_SCHEDULE, cursor=3).handle_key("down")
        assert editor.value == "09:59"

    def test_total_hours_follows_edits(self):
        editor = TimeFieldEditor(DEFAULT_SCHEDULE, field=EditField.AFTERNOON_END, cursor=1)
        assert editor.handle_key("down").total_hours() == 6

    def test_unknown_key_returns_none(self):
        assert TimeFieldEditor(DEFAULT_SCHEDULE).handle_key("x") is None

    def test_editor_is_immutable(self):
        editor = TimeFieldEditor(DEFAULT_SCHEDULE)
        editor.handle_key("up")
        assert editor.value == "09:00"
