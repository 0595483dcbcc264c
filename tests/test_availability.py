"""Unit tests for slot generation and combined availability."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
import pytz

from agenda.scheduling.availability import (
    compute_combined_availability,
    compute_slots,
    pick_available_staff,
)
from agenda.scheduling.conflicts import validate_booking
from agenda.scheduling.types import BookingInfo, DaySchedule, ServiceInfo, StaffInfo, WeeklySchedule
from conftest import MONDAY, TZ, at, make_booking, make_staff, make_time_off


def _expected(start: str, end: str, step: int = 15):
    h, m = map(int, start.split(":"))
    cursor = h * 60 + m
    h, m = map(int, end.split(":"))
    last = h * 60 + m
    out = []
    while cursor <= last:
        out.append(f"{cursor // 60:02d}:{cursor % 60:02d}")
        cursor += step
    return out


def test_free_monday_yields_every_quarter_hour(haircut):
    slots = compute_slots(make_staff(), haircut, MONDAY, [], [], TZ)
    assert slots == _expected("09:00", "16:30")
    assert slots[0] == "09:00"
    assert slots[-1] == "16:30"
    assert len(slots) == 31


def test_day_off_yields_nothing(haircut):
    saturday = date(2024, 6, 8)
    assert compute_slots(make_staff(), haircut, saturday, [], [], TZ) == []


def test_unaligned_start_is_kept():
    staff = make_staff(start="09:10", end="10:10")
    service = ServiceInfo(id="s", duration_minutes=30)
    assert compute_slots(staff, service, MONDAY, [], [], TZ) == ["09:10", "09:25", "09:40"]


def test_service_longer_than_window():
    staff = make_staff(start="09:00", end="10:00")
    service = ServiceInfo(id="long", duration_minutes=90)
    assert compute_slots(staff, service, MONDAY, [], [], TZ) == []


def test_spring_forward_gap_is_skipped(haircut):
    # 2024-03-10 (domingo): em Nova York 02:00 pula direto para 03:00
    new_york = pytz.timezone("America/New_York")
    staff = StaffInfo(id="ny", schedule=WeeklySchedule({"sunday": DaySchedule.working("01:00", "04:00")}))

    slots = compute_slots(staff, haircut, date(2024, 3, 10), [], [], new_york)

    assert slots == ["01:00", "01:15", "01:30", "01:45", "03:00", "03:15", "03:30"]
    assert slots == sorted(set(slots))


def test_non_positive_step_is_rejected(haircut):
    with pytest.raises(ValueError):
        compute_slots(make_staff(), haircut, MONDAY, [], [], TZ, step_minutes=0)


def test_existing_booking_removes_overlapping_candidates(haircut):
    booking = make_booking("b1", "staff_x", MONDAY, "10:00")
    slots = compute_slots(make_staff(), haircut, MONDAY, [booking], [], TZ)
    # 09:45 termina às 10:15 e 10:15 começa antes de 10:30
    assert "09:30" in slots
    assert "09:45" not in slots
    assert "10:00" not in slots
    assert "10:15" not in slots
    assert "10:30" in slots


def test_cancelled_and_foreign_bookings_do_not_block(haircut):
    cancelled = make_booking("b1", "staff_x", MONDAY, "10:00", status="cancelled")
    other_staff = make_booking("b2", "staff_y", MONDAY, "10:00")
    slots = compute_slots(make_staff(), haircut, MONDAY, [cancelled, other_staff], [], TZ)
    assert "10:00" in slots


def test_time_offs_are_checked_independently(haircut):
    lunch = make_time_off("staff_x", at(MONDAY, "12:00"), at(MONDAY, "13:00"), "lunch")
    closure = make_time_off("all", at(MONDAY, "15:00"), at(MONDAY, "17:00"), "closure")
    someone_else = make_time_off("staff_y", at(MONDAY, "09:00"), at(MONDAY, "17:00"), "other")
    slots = compute_slots(make_staff(), haircut, MONDAY, [], [lunch, closure, someone_else], TZ)

    assert "09:00" in slots
    assert "11:30" in slots
    assert "11:45" not in slots
    assert "12:30" not in slots
    assert "13:00" in slots
    assert slots[-1] == "14:30"


def test_returned_slots_pass_the_validator(haircut):
    staff = make_staff()
    bookings = [make_booking("b1", "staff_x", MONDAY, "10:00"), make_booking("b2", "staff_x", MONDAY, "14:10", 45)]
    time_offs = [make_time_off("all", at(MONDAY, "12:00"), at(MONDAY, "12:50"))]

    for slot in compute_slots(staff, haircut, MONDAY, bookings, time_offs, TZ):
        start_at = at(MONDAY, slot)
        proposed = BookingInfo("new", staff.id, start_at, start_at + timedelta(minutes=30))
        assert validate_booking(proposed, staff.schedule, time_offs, bookings, TZ).ok, slot


def test_combined_availability_unions_staff(haircut):
    mike = make_staff("staff_1")
    sarah = make_staff("staff_2", start="10:00", end="12:00")
    booking = make_booking("b1", "staff_1", MONDAY, "10:00")

    combined = compute_combined_availability(haircut, MONDAY, [mike, sarah], [booking], [], TZ)

    assert list(combined)[0] == "09:00"
    assert combined["09:00"] == ["staff_1"]
    assert combined["10:00"] == ["staff_2"]
    assert combined["10:30"] == ["staff_1", "staff_2"]
    assert list(combined) == sorted(combined)


def test_combined_availability_respects_service_staff_list():
    service = ServiceInfo(id="beard", duration_minutes=30, staff_ids=frozenset({"staff_2"}))
    combined = compute_combined_availability(
        service, MONDAY, [make_staff("staff_1"), make_staff("staff_2")], [], [], TZ
    )
    assert all(ids == ["staff_2"] for ids in combined.values())


def test_combined_availability_skips_inactive_staff(haircut):
    inactive = StaffInfo(id="staff_9", schedule=make_staff().schedule, is_active=False)
    combined = compute_combined_availability(haircut, MONDAY, [inactive], [], [], TZ)
    assert combined == {}


def test_pick_available_staff_prefers_first_free(haircut):
    busy = make_booking("b1", "staff_1", MONDAY, "10:00")
    staff = [make_staff("staff_2"), make_staff("staff_1")]

    assert pick_available_staff(haircut, at(MONDAY, "09:00"), staff, [busy], [], TZ).id == "staff_1"
    assert pick_available_staff(haircut, at(MONDAY, "10:00"), staff, [busy], [], TZ).id == "staff_2"
    assert pick_available_staff(haircut, at(MONDAY, "18:00"), staff, [busy], [], TZ) is None
