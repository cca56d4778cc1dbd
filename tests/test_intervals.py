"""
Tests for time-of-day ranges and day selectors
"""

from datetime import date, datetime, time

import pytest

from dentaldesk.shared.errors import ValidationFailed
from dentaldesk.shared.intervals import (
    SpecificDate,
    TimeOfDay,
    TimeRange,
    Weekday,
    WeeklyDay,
    date_ranges_overlap,
    matches_selector,
    overlaps,
    selector_from_fields,
    time_to_minutes,
)

MONDAY = date(2024, 6, 3)


def tr(start: str, end: str) -> TimeRange:
    return TimeRange.parse(start, end)


class TestTimeOfDay:
    def test_parse_normalizes_single_digit_hour(self):
        t = TimeOfDay.parse("9:05")
        assert (t.hour, t.minute) == (9, 5)
        assert str(t) == "09:05"

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", "9h30"])
    def test_parse_rejects_invalid(self, value):
        with pytest.raises(ValidationFailed):
            TimeOfDay.parse(value)

    def test_out_of_range_components_rejected(self):
        with pytest.raises(ValidationFailed):
            TimeOfDay(23, 60)

    def test_ordering_uses_minutes(self):
        # "9:30" > "10:00" as strings, not as times
        assert TimeOfDay.parse("9:30") < TimeOfDay.parse("10:00")

    def test_time_to_minutes(self):
        assert time_to_minutes("00:00") == 0
        assert time_to_minutes("13:45") == 13 * 60 + 45
        assert time_to_minutes(TimeOfDay(23, 59)) == 1439

    def test_accepts_datetime_time(self):
        assert TimeOfDay.parse(time(8, 15)) == TimeOfDay(8, 15)

    def test_on_combines_with_date(self):
        assert TimeOfDay(9, 0).on(MONDAY) == datetime(2024, 6, 3, 9, 0)


class TestTimeRange:
    def test_start_must_precede_end(self):
        with pytest.raises(ValidationFailed) as exc:
            tr("10:00", "10:00")
        assert exc.value.field == "startTime"

        with pytest.raises(ValidationFailed):
            tr("11:00", "10:00")

    def test_duration(self):
        assert tr("09:00", "13:30").duration_minutes == 270

    def test_str(self):
        assert str(tr("9:00", "17:00")) == "09:00-17:00"


class TestOverlaps:
    PAIRS = [
        (("09:00", "10:00"), ("10:00", "11:00")),
        (("09:00", "10:00"), ("09:59", "10:30")),
        (("09:00", "12:00"), ("10:00", "11:00")),
        (("08:00", "09:00"), ("13:00", "14:00")),
        (("09:00", "10:00"), ("09:00", "10:00")),
    ]

    @pytest.mark.parametrize("a,b", PAIRS)
    def test_symmetric(self, a, b):
        assert overlaps(tr(*a), tr(*b)) == overlaps(tr(*b), tr(*a))

    def test_touching_endpoints_do_not_overlap(self):
        assert overlaps(tr("09:00", "10:00"), tr("10:00", "11:00")) is False

    def test_one_minute_overlap(self):
        assert overlaps(tr("09:00", "10:00"), tr("09:59", "10:30")) is True

    def test_containment_overlaps(self):
        assert overlaps(tr("09:00", "12:00"), tr("10:00", "11:00")) is True

    def test_datetime_tuples(self):
        a = (datetime(2024, 6, 3, 9), datetime(2024, 6, 3, 11))
        b = (datetime(2024, 6, 3, 11), datetime(2024, 6, 3, 11, 30))
        c = (datetime(2024, 6, 3, 10, 30), datetime(2024, 6, 3, 11, 30))
        assert overlaps(a, b) is False
        assert overlaps(a, c) is True

    def test_date_ranges_inclusive(self):
        assert date_ranges_overlap(date(2024, 6, 1), date(2024, 6, 5), date(2024, 6, 5), date(2024, 6, 9))
        assert not date_ranges_overlap(date(2024, 6, 1), date(2024, 6, 4), date(2024, 6, 5), date(2024, 6, 9))


class TestSelectors:
    def test_both_fields_rejected(self):
        with pytest.raises(ValidationFailed):
            selector_from_fields(MONDAY, "Monday")

    def test_neither_field_rejected(self):
        with pytest.raises(ValidationFailed):
            selector_from_fields(None, None)
        with pytest.raises(ValidationFailed):
            selector_from_fields(None, "")

    def test_builds_tagged_variants(self):
        assert selector_from_fields(MONDAY, None) == SpecificDate(MONDAY)
        assert selector_from_fields(None, "monday") == WeeklyDay(Weekday.MONDAY)

    def test_weekday_parse_is_case_insensitive(self):
        assert Weekday.parse("FRIDAY") is Weekday.FRIDAY
        assert Weekday.parse(" tuesday ") is Weekday.TUESDAY
        with pytest.raises(ValidationFailed):
            Weekday.parse("Funday")

    def test_weekday_from_date(self):
        assert Weekday.from_date(MONDAY) is Weekday.MONDAY
        assert Weekday.from_date(date(2024, 6, 9)) is Weekday.SUNDAY

    def test_matches_selector(self):
        class Rec:
            def __init__(self, selector):
                self.selector = selector

        assert matches_selector(Rec(SpecificDate(MONDAY)), MONDAY)
        assert matches_selector(Rec(WeeklyDay(Weekday.MONDAY)), MONDAY)
        assert not matches_selector(Rec(WeeklyDay(Weekday.TUESDAY)), MONDAY)

    def test_dated_record_never_matches_by_weekday(self):
        # 2024-06-10 is also a Monday
        class Rec:
            selector = SpecificDate(MONDAY)

        assert not matches_selector(Rec(), date(2024, 6, 10))
