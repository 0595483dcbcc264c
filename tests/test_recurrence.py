"""Unit tests for recurrence expansion."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from agenda.scheduling.errors import InvalidRecurrenceConfig
from agenda.scheduling.recurrence import expand_recurrence, occurrence_starts, plan_occurrences
from agenda.scheduling.types import BookingInfo, ConflictReason, DaySchedule, RecurrenceRule, WeeklySchedule
from conftest import MONDAY, TZ, at, make_booking, make_staff


def _base(day: date = MONDAY, start: str = "10:00", minutes: int = 30) -> BookingInfo:
    start_at = at(day, start)
    return BookingInfo("", "staff_x", start_at, start_at + timedelta(minutes=minutes), service_id="serv_1")


@pytest.mark.parametrize("until", [date(2024, 6, 3), date(2024, 6, 9), date(2024, 6, 24), date(2024, 8, 30)])
def test_weekly_occurrence_count(until):
    starts = list(occurrence_starts(at(MONDAY, "10:00"), RecurrenceRule.weekly, until, TZ))
    assert len(starts) == (until - MONDAY).days // 7 + 1
    assert all(s.date() <= until for s in starts)


def test_weekly_keeps_time_of_day():
    starts = list(occurrence_starts(at(MONDAY, "10:00"), RecurrenceRule.weekly, date(2024, 7, 1), TZ))
    assert {s.strftime("%H:%M") for s in starts} == {"10:00"}
    assert [s.date() for s in starts][:2] == [date(2024, 6, 3), date(2024, 6, 10)]


def test_monthly_clamps_and_preserves_day_of_month():
    jan_31 = date(2024, 1, 31)
    starts = list(occurrence_starts(at(jan_31, "09:00"), "monthly", date(2024, 5, 31), TZ))
    assert [s.date() for s in starts] == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
        date(2024, 5, 31),
    ]


def test_weekly_series_reports_the_conflicting_date():
    unrelated = make_booking("other", "staff_x", date(2024, 6, 17), "10:00", minutes=60)

    results = expand_recurrence(
        _base(), "weekly", date(2024, 6, 24), make_staff().schedule, [], [unrelated], TZ
    )

    assert len(results) == 4
    assert [r.accepted for r in results] == [True, True, False, True]
    rejected = [r for r in results if not r.accepted]
    assert rejected[0].day == date(2024, 6, 17)
    assert rejected[0].reason == ConflictReason.slot_conflict


def test_each_occurrence_gets_its_own_id():
    results = expand_recurrence(_base(), "weekly", date(2024, 6, 24), make_staff().schedule, [], [], TZ)
    assert len({r.booking.id for r in results}) == 4
    assert all(r.booking.end_at - r.booking.start_at == timedelta(minutes=30) for r in results)


def test_monthly_occurrence_on_day_off_is_rejected_but_series_continues():
    # 03/06, 03/07 (quarta), 03/08 (sábado), 03/09 (terça)
    results = expand_recurrence(_base(), "monthly", date(2024, 9, 3), make_staff().schedule, [], [], TZ)
    assert [r.accepted for r in results] == [True, True, False, True]
    assert results[2].reason == ConflictReason.outside_working_hours


def test_accepted_occurrences_block_later_ones():
    # série das 10:00 às 11:30 bloqueia outra série às 11:00
    schedule = WeeklySchedule({"monday": DaySchedule.working("09:00", "17:00")})
    first = expand_recurrence(_base(minutes=90), "weekly", date(2024, 6, 10), schedule, [], [], TZ)
    accepted = [r.booking for r in first if r.accepted]

    second = expand_recurrence(
        _base(start="11:00", minutes=30), "weekly", date(2024, 6, 10), schedule, [], accepted, TZ
    )
    assert [r.reason for r in second] == [ConflictReason.slot_conflict, ConflictReason.slot_conflict]


@pytest.mark.parametrize(
    "rule, until",
    [
        ("weekly", None),
        ("daily", date(2024, 6, 24)),
        ("weekly", date(2024, 6, 1)),
    ],
)
def test_invalid_recurrence_config(rule, until):
    with pytest.raises(InvalidRecurrenceConfig):
        plan_occurrences(at(MONDAY, "10:00"), rule, until, TZ)


def test_too_many_occurrences():
    with pytest.raises(InvalidRecurrenceConfig):
        plan_occurrences(at(MONDAY, "10:00"), "weekly", date(2030, 1, 1), TZ, max_occurrences=10)
