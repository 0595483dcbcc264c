"""Unit tests for booking status transitions and rescheduling."""

from __future__ import annotations

import pytest

from agenda.scheduling import lifecycle
from agenda.scheduling.errors import InvalidTransition
from agenda.scheduling.types import ConflictReason
from conftest import MONDAY, TZ, at, make_booking, make_staff


@pytest.mark.parametrize(
    "current, action, expected",
    [
        ("pending", "confirm", "confirmed"),
        ("confirmed", "complete", "completed"),
        ("pending", "cancel", "cancelled"),
        ("confirmed", "cancel", "cancelled"),
        ("cancelled", "cancel", "cancelled"),
    ],
)
def test_valid_transitions(current, action, expected):
    assert lifecycle.next_status(current, action) == expected


@pytest.mark.parametrize(
    "current, action",
    [
        ("completed", "cancel"),
        ("pending", "complete"),
        ("confirmed", "confirm"),
        ("cancelled", "confirm"),
        ("completed", "confirm"),
    ],
)
def test_invalid_transitions(current, action):
    with pytest.raises(InvalidTransition) as exc:
        lifecycle.next_status(current, action)
    assert exc.value.code == "InvalidTransition"


def test_cancel_twice_is_same_as_once():
    once = lifecycle.next_status("confirmed", "cancel")
    twice = lifecycle.next_status(once, "cancel")
    assert once == twice == "cancelled"


def test_initial_status_policy():
    assert lifecycle.initial_status("pending") == "pending"
    assert lifecycle.initial_status("confirmed") == "confirmed"
    with pytest.raises(ValueError):
        lifecycle.initial_status("completed")


def test_reschedule_success_keeps_status():
    booking = make_booking("b1", "staff_x", MONDAY, "10:00", status="pending")
    moved, result = lifecycle.reschedule(
        booking, at(MONDAY, "14:00"), 30, make_staff().schedule, [], [booking], TZ
    )
    assert result.ok
    assert moved.start_at == at(MONDAY, "14:00")
    assert moved.status == "pending"
    assert moved.id == "b1"


def test_reschedule_conflict_leaves_booking_untouched():
    booking = make_booking("b1", "staff_x", MONDAY, "10:00")
    other = make_booking("b2", "staff_x", MONDAY, "14:00")
    unchanged, result = lifecycle.reschedule(
        booking, at(MONDAY, "14:15"), 30, make_staff().schedule, [], [booking, other], TZ
    )
    assert result.reason == ConflictReason.slot_conflict
    assert unchanged is booking


def test_reschedule_to_another_staff_member():
    booking = make_booking("b1", "staff_x", MONDAY, "10:00")
    busy_elsewhere = make_booking("b2", "staff_y", MONDAY, "10:00")
    _, result = lifecycle.reschedule(
        booking, at(MONDAY, "10:00"), 30, make_staff("staff_y").schedule, [], [booking, busy_elsewhere], TZ,
        new_staff_id="staff_y",
    )
    assert result.reason == ConflictReason.slot_conflict


@pytest.mark.parametrize("status", ["completed", "cancelled"])
def test_reschedule_requires_open_booking(status):
    booking = make_booking("b1", "staff_x", MONDAY, "10:00", status=status)
    with pytest.raises(InvalidTransition):
        lifecycle.reschedule(booking, at(MONDAY, "14:00"), 30, make_staff().schedule, [], [], TZ)


def test_checkout_only_after_completion():
    lifecycle.ensure_checkout_allowed("completed")
    for status in ("pending", "confirmed", "cancelled"):
        with pytest.raises(InvalidTransition):
            lifecycle.ensure_checkout_allowed(status)
