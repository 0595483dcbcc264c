"""
Booking Lifecycle

    pending -> confirmed -> completed
    pending | confirmed -> cancelled

Cancelling a cancelled booking is a no-op. Rescheduling keeps the status and is
all-or-nothing: either the new interval validates and replaces the old one, or
the booking is returned untouched.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

import pytz

from agenda.scheduling.conflicts import validate_booking
from agenda.scheduling.errors import InvalidTransition
from agenda.scheduling.types import (
    BookingInfo,
    BookingStatus,
    TimeOffInfo,
    ValidationResult,
    WeeklySchedule,
)

CONFIRM = "confirm"
COMPLETE = "complete"
CANCEL = "cancel"
RESCHEDULE = "reschedule"
CHECKOUT = "checkout"

TRANSITIONS = {
    (BookingStatus.pending.value, CONFIRM): BookingStatus.confirmed.value,
    (BookingStatus.confirmed.value, COMPLETE): BookingStatus.completed.value,
    (BookingStatus.pending.value, CANCEL): BookingStatus.cancelled.value,
    (BookingStatus.confirmed.value, CANCEL): BookingStatus.cancelled.value,
}

INITIAL_STATUSES = (BookingStatus.pending.value, BookingStatus.confirmed.value)
RESCHEDULABLE_STATUSES = (BookingStatus.pending.value, BookingStatus.confirmed.value)


def initial_status(policy: str) -> str:
    if policy not in INITIAL_STATUSES:
        raise ValueError(f"Status inicial inválido: {policy!r} (use pending ou confirmed)")
    return policy


def next_status(current: str, action: str) -> str:
    if action == CANCEL and current == BookingStatus.cancelled.value:
        return current

    try:
        return TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidTransition(current, action)


def ensure_reschedulable(current: str) -> None:
    if current not in RESCHEDULABLE_STATUSES:
        raise InvalidTransition(current, RESCHEDULE)


def ensure_checkout_allowed(current: str) -> None:
    # checkout/pagamento só depois de concluído
    if current != BookingStatus.completed.value:
        raise InvalidTransition(current, CHECKOUT)


def reschedule(
    booking: BookingInfo,
    new_start: datetime,
    duration_minutes: int,
    schedule: WeeklySchedule,
    time_offs: Iterable[TimeOffInfo],
    existing: Iterable[BookingInfo],
    tz: pytz.BaseTzInfo,
    new_staff_id: Optional[str] = None,
) -> Tuple[BookingInfo, ValidationResult]:
    """
    Valida o novo intervalo e devolve (reserva, resultado).

    `schedule` é o expediente do profissional de destino. Em caso de rejeição a
    reserva devolvida é a original, sem alterações.
    """
    ensure_reschedulable(booking.status)

    moved = replace(
        booking,
        staff_id=new_staff_id or booking.staff_id,
        start_at=new_start,
        end_at=new_start + timedelta(minutes=duration_minutes),
    )
    result = validate_booking(moved, schedule, time_offs, existing, tz)
    if not result.ok:
        return booking, result
    return moved, result
