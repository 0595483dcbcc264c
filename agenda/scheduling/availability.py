"""
Availability Service

Generates bookable start times ("HH:MM") for a staff member on one day and
merges them across every staff member qualified for a service.

Candidates start exactly at the day's start_time and advance by a fixed step
(SLOT_STEP_MINUTES), independent of the service duration.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import pytz

from agenda.core.config import SLOT_STEP_MINUTES
from agenda.scheduling.conflicts import (
    find_conflicting_booking,
    find_time_off,
    within_working_hours,
)
from agenda.scheduling.errors import UnknownStaffOrService
from agenda.scheduling.repositories import Repositories
from agenda.scheduling.timeutils import exists_locally, format_hhmm, local_datetime, local_day_bounds
from agenda.scheduling.types import BookingInfo, ServiceInfo, StaffInfo, TimeOffInfo

logger = logging.getLogger(__name__)


def iter_slot_starts(
    staff: StaffInfo,
    service: ServiceInfo,
    day: date,
    bookings: Iterable[BookingInfo],
    time_offs: Iterable[TimeOffInfo],
    tz: pytz.BaseTzInfo,
    step_minutes: int = SLOT_STEP_MINUTES,
):
    """
    Gera os instantes (aware) de início livres, em ordem.

    Horários de parede que não existem no dia (salto do horário de verão) são
    pulados, para não repetir nem desordenar os slots.
    """
    if step_minutes <= 0:
        raise ValueError("step_minutes deve ser maior que zero")

    day_schedule = staff.schedule.for_day(day)
    if not day_schedule.is_working:
        return

    # só o que interessa a este profissional
    busy = [b for b in bookings if b.staff_id == staff.id and b.is_occupying]
    blocks = [t for t in time_offs if t.applies_to(staff.id)]

    duration = timedelta(minutes=service.duration_minutes)
    cursor = day_schedule.start_minutes
    end_minutes = day_schedule.end_minutes

    while cursor + service.duration_minutes <= end_minutes:
        slot_start = local_datetime(day, cursor, tz)
        if not exists_locally(slot_start, tz):
            cursor += step_minutes
            continue

        slot_end = slot_start + duration

        if (
            find_conflicting_booking(slot_start, slot_end, staff.id, busy) is None
            and find_time_off(slot_start, slot_end, staff.id, blocks) is None
            and within_working_hours(slot_start, slot_end, staff.schedule, tz)
        ):
            yield slot_start

        cursor += step_minutes


def compute_slots(
    staff: StaffInfo,
    service: ServiceInfo,
    day: date,
    bookings: Iterable[BookingInfo],
    time_offs: Iterable[TimeOffInfo],
    tz: pytz.BaseTzInfo,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> List[str]:
    """
    Horários livres ("HH:MM") de um profissional em um dia para um serviço.

    Um candidato [cursor, cursor + duração) é descartado se sobrepõe uma reserva
    ativa do profissional ou uma folga dele (ou do negócio inteiro).
    """
    return [
        format_hhmm(start.astimezone(tz))
        for start in iter_slot_starts(staff, service, day, bookings, time_offs, tz, step_minutes)
    ]


def qualified_staff(service: ServiceInfo, staff_list: Sequence[StaffInfo]) -> List[StaffInfo]:
    active = [s for s in staff_list if s.is_active]
    if not service.staff_ids:
        # serviço sem lista de profissionais = qualquer um atende
        return active
    return [s for s in active if s.id in service.staff_ids]


def compute_combined_availability(
    service: ServiceInfo,
    day: date,
    staff_list: Sequence[StaffInfo],
    bookings: Iterable[BookingInfo],
    time_offs: Iterable[TimeOffInfo],
    tz: pytz.BaseTzInfo,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> Dict[str, List[str]]:
    """
    Une a disponibilidade de todos os profissionais qualificados.

    Returns:
        {"09:00": ["staff_1", "staff_2"], "09:15": ["staff_2"], ...}
        ordenado por horário; só aparecem horários com alguém livre.
    """
    bookings = list(bookings)
    time_offs = list(time_offs)

    by_time: Dict[str, set] = {}
    for staff in qualified_staff(service, staff_list):
        for slot in compute_slots(staff, service, day, bookings, time_offs, tz, step_minutes):
            by_time.setdefault(slot, set()).add(staff.id)

    return OrderedDict((slot, sorted(by_time[slot])) for slot in sorted(by_time))


def pick_available_staff(
    service: ServiceInfo,
    start_at: datetime,
    staff_list: Sequence[StaffInfo],
    bookings: Iterable[BookingInfo],
    time_offs: Iterable[TimeOffInfo],
    tz: pytz.BaseTzInfo,
) -> Optional[StaffInfo]:
    """Primeiro profissional qualificado (por id) livre em start_at."""
    bookings = list(bookings)
    time_offs = list(time_offs)
    end_at = start_at + timedelta(minutes=service.duration_minutes)

    for staff in sorted(qualified_staff(service, staff_list), key=lambda s: s.id):
        if not within_working_hours(start_at, end_at, staff.schedule, tz):
            continue
        if find_time_off(start_at, end_at, staff.id, time_offs) is not None:
            continue
        if find_conflicting_booking(start_at, end_at, staff.id, bookings) is not None:
            continue
        return staff
    return None


# =========================
# CONSULTAS VIA REPOSITÓRIOS
# =========================

def _require_service(repos: Repositories, service_id: str) -> ServiceInfo:
    service = repos.services.get(service_id)
    if service is None:
        raise UnknownStaffOrService(f"Serviço não encontrado ou inativo: {service_id}")
    return service


def get_staff_slots(
    repos: Repositories,
    staff_id: str,
    service_id: str,
    day: date,
    tz: pytz.BaseTzInfo,
) -> List[str]:
    service = _require_service(repos, service_id)
    staff = repos.staff.get(staff_id)
    if staff is None or not staff.is_active:
        raise UnknownStaffOrService(f"Profissional não encontrado: {staff_id}")

    if not service.is_qualified(staff.id):
        logger.debug("Staff %s does not provide service %s", staff.id, service.id)
        return []

    day_start, day_end = local_day_bounds(day, tz)
    bookings = repos.bookings.list_overlapping([staff.id], day_start, day_end)
    time_offs = repos.time_offs.list_overlapping([staff.id], day_start, day_end)

    return compute_slots(staff, service, day, bookings, time_offs, tz)


def get_combined_availability(
    repos: Repositories,
    service_id: str,
    day: date,
    tz: pytz.BaseTzInfo,
) -> Dict[str, List[str]]:
    service = _require_service(repos, service_id)
    staff_list = qualified_staff(service, repos.staff.list_active())
    if not staff_list:
        return OrderedDict()

    staff_ids = [s.id for s in staff_list]
    day_start, day_end = local_day_bounds(day, tz)
    bookings = repos.bookings.list_overlapping(staff_ids, day_start, day_end)
    time_offs = repos.time_offs.list_overlapping(staff_ids, day_start, day_end)

    return compute_combined_availability(service, day, staff_list, bookings, time_offs, tz)
