"""Tests for reconcile.py - day classification and missing-day discovery."""

from datetime import date
from decimal import Decimal

from factories import clock_entry, holiday, hour_entry, time_off
from models import DayStatus, MonthFeeds
from reconcile import (
    DayIndex,
    classify,
    day_info,
    expand_holidays,
    expand_time_off,
    find_missing_days,
    last_working_day,
    sum_hours,
)

TODAY = date(2026, 1, 20)


class TestExpansion:
    """Tests for the per-date lookup tables."""

    def test_holiday_range_covers_every_day(self):
        by_date = expand_holidays([holiday("Winter Break", date(2026, 1, 1), date(2026, 1, 3))])

        assert sorted(by_date) == [date(2026, 1, 1), date(2026, 1, 2), date(2026, 1, 3)]
        assert by_date[date(2026, 1, 2)] == ["Winter Break"]

    def test_overlapping_holidays_collect_names(self):
        day = date(2026, 1, 1)
        by_date = expand_holidays([holiday("New Year", day), holiday("Founders Day", day)])

        assert by_date[day] == ["New Year", "Founders Day"]

    def test_time_off_uses_listed_dates_only(self):
        # The range spans the weekend but only two dates are listed
        request = time_off(date(2026, 1, 9), date(2026, 1, 12))
        by_date = expand_time_off([request])

        assert set(by_date) == {date(2026, 1, 9), date(2026, 1, 12)}
        assert date(2026, 1, 10) not in by_date

    def test_first_time_off_request_wins(self):
        day = date(2026, 1, 14)
        by_date = expand_time_off([time_off(day, type_name="Sick"), time_off(day, type_name="Vacation")])

        assert by_date[day] == "Sick"

    def test_sum_hours_ignores_unreported(self):
        day = date(2026, 1, 14)
        entries = [
            hour_entry(day, "3.5", entry_id=1),
            hour_entry(day, "4", entry_id=2),
            clock_entry(day, "14:00", "15:00", entry_id=3),
        ]
        assert sum_hours(entries) == {day: Decimal("7.5")}


class TestClassify:
    """Tests for status precedence."""

    def test_weekend_beats_everything(self):
        sat = date(2026, 1, 10)
        feeds = MonthFeeds(entries=[hour_entry(sat)], holidays=[holiday("Party", sat)])

        assert classify(sat, feeds, TODAY) == (DayStatus.WEEKEND, "Party")

    def test_holiday_beats_time_off(self):
        day = date(2026, 1, 19)
        feeds = MonthFeeds(holidays=[holiday("MLK Day", day)], time_off=[time_off(day)])

        assert classify(day, feeds, TODAY) == (DayStatus.HOLIDAY, "MLK Day")

    def test_time_off_beats_hours(self):
        day = date(2026, 1, 14)
        feeds = MonthFeeds(entries=[hour_entry(day)], time_off=[time_off(day)])

        assert classify(day, feeds, TODAY) == (DayStatus.TIME_OFF, "Vacation")

    def test_hours(self):
        day = date(2026, 1, 14)
        assert classify(day, MonthFeeds(entries=[hour_entry(day)]), TODAY)[0] == DayStatus.HAS_HOURS

    def test_zero_hours_is_missing(self):
        day = date(2026, 1, 14)
        feeds = MonthFeeds(entries=[hour_entry(day, "0")])
        assert classify(day, feeds, TODAY)[0] == DayStatus.MISSING

    def test_future(self):
        assert classify(date(2026, 1, 21), MonthFeeds(), TODAY)[0] == DayStatus.FUTURE

    def test_today_is_missing_not_future(self):
        assert classify(TODAY, MonthFeeds(), TODAY)[0] == DayStatus.MISSING

    def test_multiple_holidays_label(self):
        day = date(2026, 1, 1)
        feeds = MonthFeeds(holidays=[holiday("A", day), holiday("B", day)])

        assert DayIndex.build(feeds).label(day) == "2 holidays"

    def test_statuses_have_wire_values(self):
        assert DayStatus.TIME_OFF.value == "timeOff"
        assert DayStatus.HAS_HOURS.value == "hasHours"


class TestDayInfo:
    """Tests for the day viewer description."""

    def test_normal_day_is_editable(self):
        info = day_info(date(2026, 1, 14), MonthFeeds())
        assert info.kind == "normal"
        assert info.editable

    def test_holiday(self):
        day = date(2026, 1, 1)
        info = day_info(day, MonthFeeds(holidays=[holiday("A", day), holiday("B", day)]))

        assert info.kind == "holiday"
        assert info.holiday_names == ["A", "B"]
        assert not info.editable

    def test_time_off(self):
        day = date(2026, 1, 14)
        info = day_info(day, MonthFeeds(time_off=[time_off(day, type_name="")]))

        assert info.kind == "timeOff"
        assert info.label == "Jane Doe"
        assert not info.editable


class TestFindMissingDays:
    """Tests for collecting unlogged workdays."""

    def test_empty_month_every_weekday_missing(self, january_weekdays):
        assert find_missing_days(2026, 1, MonthFeeds(), today=TODAY) == january_weekdays

    def test_fully_logged_month(self, logged_january):
        assert find_missing_days(2026, 1, logged_january, today=TODAY) == []

    def test_excludes_holidays_and_time_off(self, january_weekdays):
        feeds = MonthFeeds(
            holidays=[holiday("New Year", date(2026, 1, 1))],
            time_off=[time_off(date(2026, 1, 2))],
            entries=[hour_entry(date(2026, 1, 5))],
        )
        missing = find_missing_days(2026, 1, feeds, today=TODAY)

        assert missing == [d for d in january_weekdays if d.day not in (1, 2, 5)]

    def test_future_days_included_by_default(self):
        missing = find_missing_days(2026, 1, MonthFeeds(), today=TODAY)
        assert date(2026, 1, 30) in missing

    def test_future_days_excluded_on_request(self):
        missing = find_missing_days(2026, 1, MonthFeeds(), today=TODAY, include_future=False)

        assert missing[-1] == TODAY
        assert all(d <= TODAY for d in missing)

    def test_feeds_not_modified(self, logged_january):
        before = list(logged_january.entries)
        find_missing_days(2026, 1, logged_january, today=TODAY)
        assert logged_january.entries == before


class TestLastWorkingDay:
    """Tests for the reminder date."""

    def test_skips_weekend(self):
        # January 31, 2026 is a Saturday
        assert last_working_day(2026, 1, MonthFeeds()) == date(2026, 1, 30)

    def test_skips_holiday_and_time_off(self):
        feeds = MonthFeeds(
            holidays=[holiday("Eve", date(2026, 12, 31))],
            time_off=[time_off(date(2026, 12, 30))],
        )
        assert last_working_day(2026, 12, feeds) == date(2026, 12, 29)

    def test_ignores_recorded_hours(self):
        feeds = MonthFeeds(entries=[hour_entry(date(2026, 1, 30))])
        assert last_working_day(2026, 1, feeds) == date(2026, 1, 30)


class TestLoggedMonth:
    """Tests for the fully logged month property."""

    def test_removing_one_entry_reinstates_that_day(self, logged_january):
        dropped = logged_january.entries[10]
        feeds = MonthFeeds(entries=[e for e in logged_january.entries if e is not dropped])

        assert find_missing_days(2026, 1, feeds, today=TODAY) == [dropped.date]
