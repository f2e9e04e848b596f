"""
Unit Tests for Pickup Scheduling

Dispatch windows per day of week, next-day rollover and minute truncation.
"""

from datetime import date, datetime, time

import pytest

from microservices.delivery_service.pickup_scheduler import (
    DISPATCH_WINDOWS,
    PICKUP_LEAD_TIME,
    next_pickup_slot,
)

pytestmark = pytest.mark.unit

# 2024-01-01 is a Monday
MONDAY = date(2024, 1, 1)
TUESDAY = date(2024, 1, 2)
WEDNESDAY = date(2024, 1, 3)
SATURDAY = date(2024, 1, 6)
SUNDAY = date(2024, 1, 7)
NEXT_MONDAY = date(2024, 1, 8)


def at(day: date, hour: int, minute: int = 0, second: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, second)


class TestWithinWindow:

    def test_lead_time_is_two_hours(self):
        assert PICKUP_LEAD_TIME.total_seconds() == 2 * 3600

    def test_inside_window_keeps_candidate(self):
        slot = next_pickup_slot(at(TUESDAY, 14, 30))
        assert slot.day == TUESDAY
        assert slot.time_of_day == time(16, 30)

    def test_truncates_to_minute(self):
        slot = next_pickup_slot(at(WEDNESDAY, 13, 5, 59))
        assert slot.time_str == "15:05"
        assert slot.date_str == "2024-01-03"


class TestBeforeWindow:

    def test_weekday_morning_clamps_to_noon(self):
        slot = next_pickup_slot(at(WEDNESDAY, 8, 0))
        assert slot.day == WEDNESDAY
        assert slot.time_of_day == time(12, 0)

    def test_monday_morning_clamps_to_one_pm(self):
        slot = next_pickup_slot(at(MONDAY, 9, 0))
        assert slot.day == MONDAY
        assert slot.time_of_day == time(13, 0)

    def test_sunday_morning_clamps_to_one_pm(self):
        slot = next_pickup_slot(at(SUNDAY, 7, 0))
        assert slot.day == SUNDAY
        assert slot.time_of_day == time(13, 0)


class TestAfterWindow:

    def test_monday_evening_rolls_to_tuesday_noon(self):
        slot = next_pickup_slot(at(MONDAY, 19, 0))
        assert slot.day == TUESDAY
        assert slot.time_of_day == time(12, 0)

    def test_window_end_is_exclusive(self):
        # 19:00 + 2h lands exactly on Tuesday's 21:00 close
        slot = next_pickup_slot(at(TUESDAY, 19, 0))
        assert slot.day == WEDNESDAY
        assert slot.time_of_day == time(12, 0)

    def test_saturday_evening_rolls_to_sunday_one_pm(self):
        slot = next_pickup_slot(at(SATURDAY, 20, 0))
        assert slot.day == SUNDAY
        assert slot.time_of_day == time(13, 0)

    def test_sunday_evening_rolls_to_monday_one_pm(self):
        slot = next_pickup_slot(at(SUNDAY, 18, 0))
        assert slot.day == NEXT_MONDAY
        assert slot.time_of_day == time(13, 0)

    def test_late_saturday_crosses_midnight_into_sunday_window(self):
        # 23:00 + 2h is Sunday 01:00, before Sunday's window opens
        slot = next_pickup_slot(at(SATURDAY, 23, 0))
        assert slot.day == SUNDAY
        assert slot.time_of_day == time(13, 0)


class TestDispatchTable:

    def test_every_weekday_has_a_window(self):
        assert sorted(DISPATCH_WINDOWS) == list(range(7))

    @pytest.mark.parametrize("weekday", [1, 2, 3, 4])
    def test_midweek_windows(self, weekday):
        window = DISPATCH_WINDOWS[weekday]
        assert (window.start, window.end, window.next_day_start) == (time(12), time(21), time(12))

    def test_weekend_next_day_times_differ(self):
        assert DISPATCH_WINDOWS[5].next_day_start == time(13)
        assert DISPATCH_WINDOWS[6].next_day_start == time(13)
        assert DISPATCH_WINDOWS[0].next_day_start == time(12)

    def test_payload_shape(self):
        slot = next_pickup_slot(at(WEDNESDAY, 8, 0))
        assert slot.as_payload() == {"date": "2024-01-03", "time": "12:00"}
