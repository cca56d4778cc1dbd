"""
Tests for room shift resolution (tiers, overrides, conflicts, day overrides)
"""

from datetime import date, datetime

import pytest

from dentaldesk.domain.schedules.resolver import (
    SUPPRESSED_BY_CLOSURE,
    SUPPRESSED_BY_DATE,
    SUPPRESSED_BY_OVERRIDE,
    TIER_DATE,
    TIER_WEEKLY,
    DayOverride,
    ShiftRecord,
    find_overlapping_shifts,
    resolve_room_day,
    resolve_shifts,
)
from dentaldesk.shared.errors import ValidationFailed
from dentaldesk.shared.intervals import TimeRange, selector_from_fields

SCHEDULE = "sched-1"
MONDAY = date(2024, 6, 3)
TUESDAY = date(2024, 6, 4)


def shift(
    id,
    start,
    end,
    day="Monday",
    on=None,
    room=1,
    practitioner="dr-a",
    side=None,
    priority=0,
    is_override=False,
    created_at=None,
):
    return ShiftRecord(
        id=id,
        schedule_id=SCHEDULE,
        room_number=room,
        practitioner_id=practitioner,
        side_practitioner_id=side,
        time_range=TimeRange.parse(start, end),
        selector=selector_from_fields(on, None if on else day),
        priority=priority,
        is_override=is_override,
        created_at=created_at,
    )


def ids(result):
    return [s.record.id for s in result.shifts]


class TestResolveShifts:
    def test_override_suppresses_whole_record(self):
        a = shift("a", "09:00", "12:00")
        b = shift("b", "10:00", "11:00", is_override=True)

        result = resolve_shifts([a, b], MONDAY)

        assert ids(result) == ["b"]
        assert result.shifts[0].record.time_range == TimeRange.parse("10:00", "11:00")
        [suppressed] = result.suppressed
        assert suppressed.record.id == "a"
        assert suppressed.reason == SUPPRESSED_BY_OVERRIDE
        assert suppressed.suppressed_by == "b"

    def test_non_overrides_coexist_as_conflicts(self):
        a = shift("a", "09:00", "12:00")
        b = shift("b", "10:00", "11:00")

        result = resolve_shifts([a, b], MONDAY)

        assert ids(result) == ["a", "b"]
        assert result.suppressed == []
        by_id = {s.record.id: s for s in result.shifts}
        assert by_id["a"].conflicts_with == ("b",)
        assert by_id["b"].conflicts_with == ("a",)

    def test_touching_shifts_do_not_conflict(self):
        result = resolve_shifts(
            [shift("a", "09:00", "10:00"), shift("b", "10:00", "11:00")], MONDAY
        )
        assert all(not s.conflicts_with for s in result.shifts)

    @pytest.mark.parametrize("weekly_priority", [0, 5, 1000])
    def test_date_specific_beats_weekly_regardless_of_priority(self, weekly_priority):
        weekly = shift("weekly", "09:00", "12:00", priority=weekly_priority, is_override=True)
        dated = shift("dated", "10:00", "11:00", on=MONDAY, priority=0)

        result = resolve_shifts([weekly, dated], MONDAY)

        assert ids(result) == ["dated"]
        assert result.shifts[0].tier == TIER_DATE
        [suppressed] = result.suppressed
        assert suppressed.reason == SUPPRESSED_BY_DATE
        assert suppressed.suppressed_by == "dated"

    def test_weekly_outside_dated_window_survives(self):
        weekly = shift("weekly", "13:00", "17:00")
        dated = shift("dated", "08:00", "12:00", on=MONDAY)

        result = resolve_shifts([weekly, dated], MONDAY)

        assert ids(result) == ["dated", "weekly"]
        assert [s.tier for s in result.shifts] == [TIER_DATE, TIER_WEEKLY]

    def test_only_matching_selectors_are_considered(self):
        records = [
            shift("mon", "09:00", "10:00"),
            shift("tue", "09:00", "10:00", day="Tuesday"),
            shift("other-date", "11:00", "12:00", on=date(2024, 6, 10)),
        ]
        assert ids(resolve_shifts(records, MONDAY)) == ["mon"]
        assert ids(resolve_shifts(records, TUESDAY)) == ["tue"]

    def test_ordered_by_start_then_priority_desc(self):
        records = [
            shift("late", "14:00", "15:00"),
            shift("early-low", "08:00", "09:00", priority=1),
            shift("early-high", "08:00", "10:00", priority=7),
        ]
        assert ids(resolve_shifts(records, MONDAY)) == ["early-high", "early-low", "late"]

    def test_higher_priority_override_wins_between_overrides(self):
        low = shift("low", "09:00", "11:00", is_override=True, priority=1)
        high = shift("high", "10:00", "12:00", is_override=True, priority=2)

        result = resolve_shifts([low, high], MONDAY)

        assert ids(result) == ["high"]
        assert result.suppressed[0].suppressed_by == "high"

    def test_later_insertion_wins_tied_overrides(self):
        older = shift("older", "09:00", "11:00", is_override=True, created_at=datetime(2024, 5, 1))
        newer = shift("newer", "09:30", "10:30", is_override=True, created_at=datetime(2024, 5, 2))

        assert ids(resolve_shifts([newer, older], MONDAY)) == ["newer"]

    def test_override_keeps_non_overlapping_shifts(self):
        records = [
            shift("morning", "08:00", "09:00"),
            shift("block", "09:00", "12:00", is_override=True),
            shift("clash", "11:00", "13:00"),
        ]
        result = resolve_shifts(records, MONDAY)
        assert ids(result) == ["morning", "block"]
        assert [s.record.id for s in result.suppressed] == ["clash"]

    def test_room_number_must_be_positive(self):
        with pytest.raises(ValidationFailed):
            shift("bad", "09:00", "10:00", room=0)


class TestDayOverrides:
    def test_room_closure_removes_everything(self):
        records = [shift("a", "09:00", "12:00"), shift("b", "13:00", "17:00")]
        closure = DayOverride(id="o1", date=MONDAY, is_unavailable=True, room_number=1, reason="Renovation")

        day = resolve_room_day(SCHEDULE, 1, MONDAY, records, [closure])

        assert day.is_available is False
        assert day.shifts == []
        assert {s.reason for s in day.suppressed} == {SUPPRESSED_BY_CLOSURE}
        assert day.closures == [closure]

    def test_clinic_wide_closure_applies_to_every_room(self):
        closure = DayOverride(id="o1", date=MONDAY, is_unavailable=True, reason="Holiday")
        day = resolve_room_day(SCHEDULE, 3, MONDAY, [shift("a", "09:00", "10:00", room=3)], [closure])
        assert day.is_available is False

    def test_closure_for_another_room_is_ignored(self):
        closure = DayOverride(id="o1", date=MONDAY, is_unavailable=True, room_number=2, reason="Leak")
        day = resolve_room_day(SCHEDULE, 1, MONDAY, [shift("a", "09:00", "10:00")], [closure])
        assert day.is_available is True
        assert [s.record.id for s in day.shifts] == ["a"]

    def test_closure_for_another_date_is_ignored(self):
        closure = DayOverride(id="o1", date=TUESDAY, is_unavailable=True, reason="Leak")
        day = resolve_room_day(SCHEDULE, 1, MONDAY, [shift("a", "09:00", "10:00")], [closure])
        assert day.is_available is True

    def test_windowed_closure_only_removes_overlapping_shifts(self):
        records = [shift("am", "09:00", "12:00"), shift("pm", "13:00", "17:00")]
        closure = DayOverride(
            id="o1", date=MONDAY, is_unavailable=True, room_number=1,
            time_range=TimeRange.parse("08:00", "10:00"), reason="Maintenance",
        )

        day = resolve_room_day(SCHEDULE, 1, MONDAY, records, [closure])

        assert day.is_available is True
        assert [s.record.id for s in day.shifts] == ["pm"]

    def test_practitioner_closure(self):
        records = [
            shift("a", "09:00", "12:00", practitioner="dr-a", side="asst-x"),
            shift("b", "13:00", "17:00", practitioner="dr-b", side="dr-a"),
        ]
        closure = DayOverride(id="o1", date=MONDAY, is_unavailable=True, practitioner_id="dr-a", reason="Conference")

        day = resolve_room_day(SCHEDULE, 1, MONDAY, records, [closure])

        assert day.is_available is True
        [remaining] = day.shifts
        assert remaining.record.id == "b"
        assert remaining.record.side_practitioner_id is None

    def test_custom_hours_are_reported_not_applied(self):
        custom = DayOverride(
            id="o1", date=MONDAY, is_unavailable=False, room_number=1,
            time_range=TimeRange.parse("10:00", "14:00"),
        )
        day = resolve_room_day(SCHEDULE, 1, MONDAY, [shift("a", "08:00", "18:00")], [custom])
        assert [s.record.id for s in day.shifts] == ["a"]
        assert day.custom_hours == [custom]

    def test_other_rooms_records_are_filtered(self):
        records = [shift("r1", "09:00", "10:00", room=1), shift("r2", "09:00", "10:00", room=2)]
        day = resolve_room_day(SCHEDULE, 2, MONDAY, records)
        assert [s.record.id for s in day.shifts] == ["r2"]

    def test_conflict_pairs(self):
        records = [shift("b", "09:00", "11:00"), shift("a", "10:00", "12:00")]
        day = resolve_room_day(SCHEDULE, 1, MONDAY, records)
        assert day.conflicts == [("a", "b")]


class TestFindOverlappingShifts:
    def test_weekly_candidate_ignores_dated_shifts(self):
        candidate = shift("new", "09:00", "10:00")
        existing = [
            shift("dated", "09:00", "10:00", on=MONDAY),
            shift("weekly", "09:30", "10:30"),
            shift("tuesday", "09:00", "10:00", day="Tuesday"),
        ]
        assert [r.id for r in find_overlapping_shifts(candidate, existing)] == ["weekly"]

    def test_dated_candidate_ignores_weekly_shifts(self):
        candidate = shift("new", "09:00", "10:00", on=MONDAY)
        existing = [
            shift("weekly", "09:00", "10:00"),
            shift("same-day", "08:00", "09:30", on=MONDAY),
            shift("other-day", "09:00", "10:00", on=TUESDAY),
        ]
        assert [r.id for r in find_overlapping_shifts(candidate, existing)] == ["same-day"]

    def test_excludes_itself_other_rooms_and_touching(self):
        candidate = shift("me", "09:00", "10:00")
        existing = [
            candidate,
            shift("room-2", "09:00", "10:00", room=2),
            shift("touching", "10:00", "11:00"),
        ]
        assert find_overlapping_shifts(candidate, existing) == []

    def test_sorted_by_start(self):
        candidate = shift("new", "08:00", "18:00")
        existing = [shift("late", "15:00", "16:00"), shift("early", "09:00", "10:00")]
        assert [r.id for r in find_overlapping_shifts(candidate, existing)] == ["early", "late"]
