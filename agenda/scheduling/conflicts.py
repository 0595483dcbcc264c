"""
Conflict Validator

Checks a single proposed booking against, in order:
    1. the staff member's working hours for that local day
    2. time-off for the staff member or the whole business ("all")
    3. other occupying bookings of the same staff member

The first failing check wins. Nothing here touches storage: callers pass a
snapshot of time-off and bookings and own the commit step.
"""

from datetime import datetime
from typing import Iterable, Optional

import pytz

from agenda.scheduling.intervals import first_overlap
from agenda.scheduling.timeutils import to_local
from agenda.scheduling.types import (
    BookingInfo,
    ConflictReason,
    TimeOffInfo,
    ValidationResult,
    WeeklySchedule,
)


def within_working_hours(
    start_at: datetime,
    end_at: datetime,
    schedule: WeeklySchedule,
    tz: pytz.BaseTzInfo,
) -> bool:
    local_start = to_local(start_at, tz)
    local_end = to_local(end_at, tz)

    # não atravessa a meia-noite
    if local_start.date() != local_end.date():
        return False

    day = schedule.for_day(local_start.date())
    if not day.is_working:
        return False

    return local_start.time() >= day.start_time and local_end.time() <= day.end_time


def find_time_off(
    start_at: datetime,
    end_at: datetime,
    staff_id: str,
    time_offs: Iterable[TimeOffInfo],
) -> Optional[TimeOffInfo]:
    relevant = (t for t in time_offs if t.applies_to(staff_id))
    return first_overlap(start_at, end_at, relevant)


def find_conflicting_booking(
    start_at: datetime,
    end_at: datetime,
    staff_id: str,
    bookings: Iterable[BookingInfo],
    exclude_id: Optional[str] = None,
) -> Optional[BookingInfo]:
    # a própria reserva é ignorada para permitir mover/editar
    relevant = (
        b for b in bookings
        if b.staff_id == staff_id and b.is_occupying and b.id != exclude_id
    )
    return first_overlap(start_at, end_at, relevant)


def validate_booking(
    proposed: BookingInfo,
    schedule: WeeklySchedule,
    time_offs: Iterable[TimeOffInfo],
    existing: Iterable[BookingInfo],
    tz: pytz.BaseTzInfo,
) -> ValidationResult:
    """
    Valida uma reserva proposta.

    Returns:
        ValidationResult.accepted() ou ValidationResult.rejected(reason), onde
        reason é OutsideWorkingHours, StaffOnTimeOff ou SlotConflict.
    """
    if not within_working_hours(proposed.start_at, proposed.end_at, schedule, tz):
        return ValidationResult.rejected(ConflictReason.outside_working_hours)

    time_off = find_time_off(proposed.start_at, proposed.end_at, proposed.staff_id, time_offs)
    if time_off is not None:
        return ValidationResult.rejected(ConflictReason.staff_on_time_off, time_off.id)

    conflict = find_conflicting_booking(
        proposed.start_at, proposed.end_at, proposed.staff_id, existing, exclude_id=proposed.id
    )
    if conflict is not None:
        return ValidationResult.rejected(ConflictReason.slot_conflict, conflict.id)

    return ValidationResult.accepted()
