"""
Repository interfaces the engine reads through, plus the SQLModel-backed
implementations used by the API.

Rows are converted into the plain snapshots of types.py on the way out; the
engine never sees a Session.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlmodel import Session, col, or_, select

from agenda.models.booking import Booking
from agenda.models.service import Service, ServiceStaffLink
from agenda.models.staff import Staff, StaffSchedule
from agenda.models.time_off import ALL_STAFF, TimeOff
from agenda.scheduling.timeutils import from_storage, to_storage
from agenda.scheduling.types import (
    DAY_OFF,
    OCCUPYING_STATUSES,
    BookingInfo,
    DaySchedule,
    ServiceInfo,
    StaffInfo,
    TimeOffInfo,
    WeeklySchedule,
)


class StaffRepository(ABC):

    @abstractmethod
    def get(self, staff_id: str) -> Optional[StaffInfo]:
        pass

    @abstractmethod
    def list_active(self) -> List[StaffInfo]:
        pass


class ServiceRepository(ABC):

    @abstractmethod
    def get(self, service_id: str) -> Optional[ServiceInfo]:
        """Serviço ativo com esse id, ou None."""
        pass


class BookingRepository(ABC):

    @abstractmethod
    def list_overlapping(
        self, staff_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[BookingInfo]:
        """Reservas ativas (não canceladas) dos profissionais que tocam [start, end)."""
        pass


class TimeOffRepository(ABC):

    @abstractmethod
    def list_overlapping(
        self, staff_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[TimeOffInfo]:
        """Folgas dos profissionais ou do negócio ("all") que tocam [start, end)."""
        pass


@dataclass
class Repositories:
    staff: StaffRepository
    services: ServiceRepository
    bookings: BookingRepository
    time_offs: TimeOffRepository


# =========================
# CONVERSÕES
# =========================

def schedule_from_rows(rows: Sequence[StaffSchedule]) -> WeeklySchedule:
    days: Dict[str, DaySchedule] = {}
    for row in rows:
        if row.is_working:
            days[row.weekday] = DaySchedule.working(row.start_time, row.end_time)
        else:
            days[row.weekday] = DAY_OFF
    return WeeklySchedule(days)


def booking_to_info(row: Booking) -> BookingInfo:
    return BookingInfo(
        id=row.id,
        staff_id=row.staff_id,
        start_at=from_storage(row.start_at),
        end_at=from_storage(row.end_at),
        status=row.status,
        service_id=row.service_id,
        customer_id=row.customer_id,
    )


def time_off_to_info(row: TimeOff) -> TimeOffInfo:
    return TimeOffInfo(
        id=row.id,
        staff_id=row.staff_id,
        start_at=from_storage(row.start_at),
        end_at=from_storage(row.end_at),
        reason=row.reason,
    )


# =========================
# IMPLEMENTAÇÃO SQLMODEL
# =========================

class SqlStaffRepository(StaffRepository):

    def __init__(self, session: Session):
        self.session = session

    def _to_info(self, staff: Staff) -> StaffInfo:
        rows = self.session.exec(
            select(StaffSchedule).where(StaffSchedule.staff_id == staff.id)
        ).all()
        return StaffInfo(
            id=staff.id,
            full_name=staff.full_name,
            is_active=staff.is_active,
            schedule=schedule_from_rows(rows),
        )

    def get(self, staff_id: str) -> Optional[StaffInfo]:
        staff = self.session.get(Staff, staff_id)
        if not staff:
            return None
        return self._to_info(staff)

    def list_active(self) -> List[StaffInfo]:
        staff_list = self.session.exec(
            select(Staff).where(Staff.is_active == True).order_by(Staff.id)  # noqa: E712
        ).all()
        return [self._to_info(s) for s in staff_list]


class SqlServiceRepository(ServiceRepository):

    def __init__(self, session: Session):
        self.session = session

    def staff_ids_for(self, service_id: str) -> List[str]:
        links = self.session.exec(
            select(ServiceStaffLink).where(ServiceStaffLink.service_id == service_id)
        ).all()
        return sorted(link.staff_id for link in links)

    def get(self, service_id: str) -> Optional[ServiceInfo]:
        service = self.session.get(Service, service_id)
        if not service or not service.is_active:
            return None
        return ServiceInfo(
            id=service.id,
            name=service.name,
            duration_minutes=service.duration_minutes,
            staff_ids=frozenset(self.staff_ids_for(service.id)),
        )


class SqlBookingRepository(BookingRepository):

    def __init__(self, session: Session):
        self.session = session

    def list_overlapping(
        self, staff_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[BookingInfo]:
        if not staff_ids:
            return []
        rows = self.session.exec(
            select(Booking).where(
                col(Booking.staff_id).in_(list(staff_ids)),
                col(Booking.status).in_(sorted(OCCUPYING_STATUSES)),
                Booking.start_at < to_storage(end),
                Booking.end_at > to_storage(start),
            ).order_by(Booking.start_at)
        ).all()
        return [booking_to_info(r) for r in rows]


class SqlTimeOffRepository(TimeOffRepository):

    def __init__(self, session: Session):
        self.session = session

    def list_overlapping(
        self, staff_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[TimeOffInfo]:
        rows = self.session.exec(
            select(TimeOff).where(
                or_(col(TimeOff.staff_id).in_(list(staff_ids)), TimeOff.staff_id == ALL_STAFF),
                TimeOff.start_at < to_storage(end),
                TimeOff.end_at > to_storage(start),
            ).order_by(TimeOff.start_at)
        ).all()
        return [time_off_to_info(r) for r in rows]


def sql_repositories(session: Session) -> Repositories:
    return Repositories(
        staff=SqlStaffRepository(session),
        services=SqlServiceRepository(session),
        bookings=SqlBookingRepository(session),
        time_offs=SqlTimeOffRepository(session),
    )
