"""
Plain data carried through the engine.

These are storage-agnostic snapshots: repositories.py builds them from the
SQLModel rows, tests build them by hand.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional, Union

from agenda.models.time_off import ALL_STAFF
from agenda.scheduling.errors import MalformedSchedule
from agenda.scheduling.timeutils import WEEKDAY_KEYS, minutes_of, parse_hhmm, weekday_key


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


# cancelled nunca bloqueia horário
OCCUPYING_STATUSES = frozenset(
    s.value for s in (BookingStatus.pending, BookingStatus.confirmed, BookingStatus.completed)
)


class RecurrenceRule(str, Enum):
    weekly = "weekly"
    monthly = "monthly"


class CancelledBy(str, Enum):
    customer = "customer"
    business = "business"
    system = "system"


class ConflictReason(str, Enum):
    outside_working_hours = "OutsideWorkingHours"
    staff_on_time_off = "StaffOnTimeOff"
    slot_conflict = "SlotConflict"


@dataclass(frozen=True)
class DaySchedule:
    is_working: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    def __post_init__(self):
        if not self.is_working:
            return
        if self.start_time is None or self.end_time is None:
            raise MalformedSchedule("start_time e end_time são obrigatórios quando is_working=true")
        if self.end_time <= self.start_time:
            raise MalformedSchedule("end_time deve ser maior que start_time")

    @classmethod
    def working(cls, start: Union[str, time], end: Union[str, time]) -> "DaySchedule":
        try:
            return cls(True, parse_hhmm(start), parse_hhmm(end))
        except ValueError as e:
            raise MalformedSchedule(str(e)) from e

    @property
    def start_minutes(self) -> int:
        return minutes_of(self.start_time)

    @property
    def end_minutes(self) -> int:
        return minutes_of(self.end_time)


DAY_OFF = DaySchedule(is_working=False)


@dataclass(frozen=True)
class WeeklySchedule:
    days: Mapping[str, DaySchedule] = field(default_factory=dict)

    def __post_init__(self):
        unknown = set(self.days) - set(WEEKDAY_KEYS)
        if unknown:
            raise MalformedSchedule(f"Dias da semana inválidos: {sorted(unknown)}")

    def for_day(self, day: date) -> DaySchedule:
        # dia sem configuração = folga
        return self.days.get(weekday_key(day), DAY_OFF)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping]) -> "WeeklySchedule":
        """Monta a partir de {"monday": {"is_working": True, "start_time": "09:00", ...}}."""
        days: Dict[str, DaySchedule] = {}
        for key, value in raw.items():
            if value.get("is_working"):
                days[key.lower()] = DaySchedule.working(value.get("start_time"), value.get("end_time"))
            else:
                days[key.lower()] = DAY_OFF
        return cls(days)


def default_schedule() -> WeeklySchedule:
    """Seg-sex 09:00-17:00, fim de semana de folga."""
    working = DaySchedule.working("09:00", "17:00")
    return WeeklySchedule({
        "monday": working,
        "tuesday": working,
        "wednesday": working,
        "thursday": working,
        "friday": working,
        "saturday": DAY_OFF,
        "sunday": DAY_OFF,
    })


@dataclass(frozen=True)
class StaffInfo:
    id: str
    schedule: WeeklySchedule
    full_name: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class ServiceInfo:
    id: str
    duration_minutes: int
    staff_ids: FrozenSet[str] = frozenset()
    name: str = ""

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError("duration_minutes deve ser maior que zero")

    def is_qualified(self, staff_id: str) -> bool:
        # lista vazia = qualquer profissional atende
        return not self.staff_ids or staff_id in self.staff_ids


@dataclass(frozen=True)
class BookingInfo:
    id: str
    staff_id: str
    start_at: datetime
    end_at: datetime
    status: str = BookingStatus.confirmed.value
    service_id: Optional[str] = None
    customer_id: Optional[str] = None

    @property
    def is_occupying(self) -> bool:
        return self.status in OCCUPYING_STATUSES


@dataclass(frozen=True)
class TimeOffInfo:
    id: str
    staff_id: str
    start_at: datetime
    end_at: datetime
    reason: str = ""

    def applies_to(self, staff_id: str) -> bool:
        return self.staff_id == ALL_STAFF or self.staff_id == staff_id


@dataclass(frozen=True)
class ValidationResult:
    reason: Optional[ConflictReason] = None
    conflicting_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def accepted(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def rejected(cls, reason: ConflictReason, conflicting_id: Optional[str] = None) -> "ValidationResult":
        return cls(reason=reason, conflicting_id=conflicting_id)
