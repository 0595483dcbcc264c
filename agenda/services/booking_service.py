"""
Booking Service

Validate-then-commit orchestration on top of the scheduling engine.

Every write that can occupy a slot runs under the staff member's lock and
re-reads the bookings inside the same session that commits, so two requests
for the same staff cannot both see a free slot and both insert.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

import pytz
from sqlmodel import Session, col, select

from agenda.core.config import INITIAL_BOOKING_STATUS, MAX_RECURRENCE_OCCURRENCES
from agenda.models.booking import Booking, BookingCreate
from agenda.scheduling import lifecycle
from agenda.scheduling.availability import pick_available_staff, qualified_staff
from agenda.scheduling.conflicts import validate_booking
from agenda.scheduling.errors import BookingNotFound, InvalidRecurrenceConfig, UnknownStaffOrService
from agenda.scheduling.recurrence import OccurrenceResult, expand_recurrence, parse_rule, plan_occurrences
from agenda.scheduling.repositories import booking_to_info, sql_repositories
from agenda.scheduling.timeutils import (
    business_tz,
    ensure_aware,
    local_day_bounds,
    to_local,
    to_storage,
)
from agenda.scheduling.types import BookingInfo, CancelledBy, ServiceInfo, StaffInfo, ValidationResult

logger = logging.getLogger(__name__)


# =========================
# LOCKS POR PROFISSIONAL
# =========================

_LOCKS: Dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(staff_id: str) -> threading.RLock:
    with _LOCKS_GUARD:
        lock = _LOCKS.get(staff_id)
        if lock is None:
            lock = _LOCKS[staff_id] = threading.RLock()
        return lock


@contextmanager
def staff_lock(*staff_ids: str):
    # ordem fixa evita deadlock quando uma reserva troca de profissional
    locks = [_lock_for(s) for s in sorted(set(staff_ids))]
    for lock in locks:
        lock.acquire()
    try:
        yield
    finally:
        for lock in reversed(locks):
            lock.release()


@dataclass
class CreateOutcome:
    created: List[Booking] = field(default_factory=list)
    rejected: List[OccurrenceResult] = field(default_factory=list)


class BookingService:

    def __init__(
        self,
        session: Session,
        tz: Optional[pytz.BaseTzInfo] = None,
        initial_status: str = INITIAL_BOOKING_STATUS,
        max_occurrences: int = MAX_RECURRENCE_OCCURRENCES,
    ):
        self.session = session
        self.repos = sql_repositories(session)
        self.tz = tz or business_tz()
        self.initial_status = lifecycle.initial_status(initial_status)
        self.max_occurrences = max_occurrences

    # -------------------------
    # leitura
    # -------------------------

    def get(self, booking_id: str) -> Booking:
        booking = self.session.get(Booking, booking_id)
        if not booking:
            raise BookingNotFound(f"Agendamento não encontrado: {booking_id}")
        return booking

    def list_bookings(
        self,
        staff_id: Optional[str] = None,
        day: Optional[date] = None,
        status: Optional[str] = None,
    ) -> List[Booking]:
        query = select(Booking)
        if staff_id:
            query = query.where(Booking.staff_id == staff_id)
        if status:
            query = query.where(Booking.status == status)
        if day:
            day_start, day_end = local_day_bounds(day, self.tz)
            query = query.where(
                Booking.start_at >= to_storage(day_start),
                Booking.start_at < to_storage(day_end),
            )
        return self.session.exec(query.order_by(col(Booking.start_at))).all()

    def _require_service(self, service_id: str) -> ServiceInfo:
        service = self.repos.services.get(service_id)
        if service is None:
            raise UnknownStaffOrService(f"Serviço não encontrado ou inativo: {service_id}")
        return service

    def _require_staff(self, staff_id: str, service: ServiceInfo) -> StaffInfo:
        staff = self.repos.staff.get(staff_id)
        if staff is None or not staff.is_active:
            raise UnknownStaffOrService(f"Profissional não encontrado: {staff_id}")
        if not service.is_qualified(staff.id):
            raise UnknownStaffOrService(
                f"Profissional {staff_id} não atende o serviço {service.id}"
            )
        return staff

    def _choose_staff(self, service: ServiceInfo, start_at: datetime) -> StaffInfo:
        """Qualquer profissional livre; se ninguém estiver, o primeiro qualificado (a validação explica o motivo)."""
        candidates = qualified_staff(service, self.repos.staff.list_active())
        if not candidates:
            raise UnknownStaffOrService(f"Nenhum profissional atende o serviço {service.id}")

        day_start, day_end = local_day_bounds(to_local(start_at, self.tz).date(), self.tz)
        ids = [s.id for s in candidates]
        bookings = self.repos.bookings.list_overlapping(ids, day_start, day_end)
        time_offs = self.repos.time_offs.list_overlapping(ids, day_start, day_end)

        chosen = pick_available_staff(service, start_at, candidates, bookings, time_offs, self.tz)
        return chosen or sorted(candidates, key=lambda s: s.id)[0]

    # -------------------------
    # criação (simples ou recorrente)
    # -------------------------

    def create(self, data: BookingCreate) -> CreateOutcome:
        service = self._require_service(data.service_id)
        start_at = self.tz.localize(datetime.combine(data.date, data.time))

        if data.recurrence_end_date and not data.recurrence_rule:
            raise InvalidRecurrenceConfig("recurrence_end_date informado sem recurrence_rule")

        if data.recurrence_rule:
            rule = parse_rule(data.recurrence_rule)
            # valida a configuração antes de qualquer leitura pesada
            starts = plan_occurrences(
                start_at, rule, data.recurrence_end_date, self.tz, self.max_occurrences
            )
        else:
            rule = None
            starts = [start_at]

        if data.staff_id and data.staff_id != "any":
            staff = self._require_staff(data.staff_id, service)
        else:
            staff = self._choose_staff(service, start_at)

        base = BookingInfo(
            id="",
            staff_id=staff.id,
            start_at=start_at,
            end_at=start_at + timedelta(minutes=service.duration_minutes),
            status=self.initial_status,
            service_id=service.id,
            customer_id=data.customer_id,
        )

        with staff_lock(staff.id):
            window_start, _ = local_day_bounds(to_local(starts[0], self.tz).date(), self.tz)
            _, window_end = local_day_bounds(to_local(starts[-1], self.tz).date(), self.tz)
            existing = self.repos.bookings.list_overlapping([staff.id], window_start, window_end)
            time_offs = self.repos.time_offs.list_overlapping([staff.id], window_start, window_end)

            if rule is None:
                candidate = replace(base, id=uuid4().hex)
                result = validate_booking(candidate, staff.schedule, time_offs, existing, self.tz)
                results = [OccurrenceResult(booking=candidate, result=result)]
            else:
                results = expand_recurrence(
                    base, rule, data.recurrence_end_date, staff.schedule,
                    time_offs, existing, self.tz, self.max_occurrences,
                )

            outcome = CreateOutcome()
            parent_id = None
            for position, occurrence in enumerate(results, start=1):
                if not occurrence.accepted:
                    outcome.rejected.append(occurrence)
                    continue

                info = occurrence.booking
                if rule is not None and parent_id is None:
                    parent_id = info.id
                booking = Booking(
                    id=info.id,
                    customer_id=data.customer_id,
                    service_id=service.id,
                    staff_id=info.staff_id,
                    start_at=to_storage(info.start_at),
                    end_at=to_storage(info.end_at),
                    status=info.status,
                    recurrence_rule=rule.value if rule else None,
                    recurrence_end_date=data.recurrence_end_date if rule else None,
                    parent_booking_id=parent_id,
                    occurrence_number=position if rule else None,
                )
                self.session.add(booking)
                outcome.created.append(booking)

            if outcome.created:
                self.session.commit()
                for booking in outcome.created:
                    self.session.refresh(booking)

        for occurrence in outcome.rejected:
            logger.info(
                "Booking rejected for staff %s at %s: %s",
                staff.id, occurrence.booking.start_at.isoformat(), occurrence.reason.value,
            )
        logger.info(
            "Created %d booking(s) for customer %s with staff %s (%d rejected)",
            len(outcome.created), data.customer_id, staff.id, len(outcome.rejected),
        )
        return outcome

    # -------------------------
    # reagendamento (arrastar e soltar / edição)
    # -------------------------

    def reschedule(
        self,
        booking_id: str,
        new_staff_id: Optional[str] = None,
        new_start_at: Optional[datetime] = None,
    ) -> Tuple[Booking, ValidationResult]:
        booking = self.get(booking_id)
        lifecycle.ensure_reschedulable(booking.status)

        service = self._require_service(booking.service_id)
        target_staff = self._require_staff(new_staff_id or booking.staff_id, service)

        with staff_lock(booking.staff_id, target_staff.id):
            # um cancelamento pode ter entrado antes do lock
            self.session.refresh(booking)
            lifecycle.ensure_reschedulable(booking.status)

            current = booking_to_info(booking)
            new_start = ensure_aware(new_start_at, self.tz) if new_start_at else current.start_at

            day_start, day_end = local_day_bounds(to_local(new_start, self.tz).date(), self.tz)
            existing = self.repos.bookings.list_overlapping([target_staff.id], day_start, day_end)
            time_offs = self.repos.time_offs.list_overlapping([target_staff.id], day_start, day_end)

            moved, result = lifecycle.reschedule(
                current, new_start, service.duration_minutes, target_staff.schedule,
                time_offs, existing, self.tz, new_staff_id=target_staff.id,
            )
            if not result.ok:
                logger.info(
                    "Reschedule of booking %s rejected: %s", booking.id, result.reason.value
                )
                return booking, result

            # troca atômica: o horário antigo só é liberado junto com o commit do novo
            booking.staff_id = moved.staff_id
            booking.start_at = to_storage(moved.start_at)
            booking.end_at = to_storage(moved.end_at)
            self.session.add(booking)
            self.session.commit()
            self.session.refresh(booking)

        logger.info("Booking %s moved to staff %s at %s", booking.id, booking.staff_id, moved.start_at.isoformat())
        return booking, result

    # -------------------------
    # status
    # -------------------------

    def _transition(self, booking_id: str, action: str, **changes) -> Booking:
        booking = self.get(booking_id)

        # mesmo lock do reagendamento: status e horário não se cruzam
        with staff_lock(booking.staff_id):
            self.session.refresh(booking)
            target = lifecycle.next_status(booking.status, action)
            if target == booking.status:
                return booking

            booking.status = target
            for name, value in changes.items():
                setattr(booking, name, value)

            self.session.add(booking)
            self.session.commit()
            self.session.refresh(booking)

        logger.info("Booking %s -> %s", booking.id, target)
        return booking

    def confirm(self, booking_id: str) -> Booking:
        return self._transition(booking_id, lifecycle.CONFIRM)

    def complete(self, booking_id: str) -> Booking:
        return self._transition(booking_id, lifecycle.COMPLETE)

    def cancel(
        self,
        booking_id: str,
        reason: Optional[str] = None,
        cancelled_by: str = CancelledBy.customer.value,
    ) -> Booking:
        # cancelar de novo não sobrescreve quem cancelou nem o motivo
        return self._transition(
            booking_id,
            lifecycle.CANCEL,
            cancelled_at=datetime.utcnow(),
            cancelled_by=CancelledBy(cancelled_by).value,
            cancel_reason=reason,
        )

    def checkout(self, booking_id: str, transaction_id: str) -> Booking:
        booking = self.get(booking_id)
        lifecycle.ensure_checkout_allowed(booking.status)

        booking.transaction_id = transaction_id
        self.session.add(booking)
        self.session.commit()
        self.session.refresh(booking)
        logger.info("Booking %s checked out (transaction %s)", booking.id, transaction_id)
        return booking
