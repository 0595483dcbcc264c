from typing import List, Optional
from datetime import date, datetime, time
from uuid import uuid4

from sqlmodel import SQLModel, Field

from agenda.scheduling.types import CancelledBy


class Booking(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)

    customer_id: str = Field(index=True)
    service_id: str = Field(foreign_key="service.id", index=True)
    staff_id: str = Field(foreign_key="staff.id", index=True)

    # instantes em UTC sem tzinfo; end_at = start_at + duração do serviço
    start_at: datetime = Field(index=True)
    end_at: datetime = Field(index=True)

    # STATUS DO AGENDAMENTO
    status: str = Field(default="confirmed", index=True)
    # pending | confirmed | completed | cancelled

    # RECORRÊNCIA
    recurrence_rule: Optional[str] = None  # weekly | monthly
    recurrence_end_date: Optional[date] = None
    parent_booking_id: Optional[str] = Field(default=None, index=True)
    occurrence_number: Optional[int] = None  # posição na série, a partir de 1

    # id da transação no checkout (colaborador externo)
    transaction_id: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None  # customer | business | system
    cancel_reason: Optional[str] = None


class BookingCreate(SQLModel):
    customer_id: str
    service_id: str
    staff_id: Optional[str] = None  # None ou "any" = qualquer profissional livre
    date: date
    time: time
    recurrence_rule: Optional[str] = None
    recurrence_end_date: Optional[date] = None


class BookingUpdate(SQLModel):
    staff_id: Optional[str] = None
    start_at: Optional[datetime] = None


class CancelRequest(SQLModel):
    reason: Optional[str] = None
    cancelled_by: CancelledBy = CancelledBy.customer


class CheckoutRequest(SQLModel):
    transaction_id: str


class BookingRead(SQLModel):
    id: str
    customer_id: str
    service_id: str
    staff_id: str
    start_at: datetime
    end_at: datetime
    status: str
    recurrence_rule: Optional[str] = None
    recurrence_end_date: Optional[date] = None
    parent_booking_id: Optional[str] = None
    occurrence_number: Optional[int] = None
    transaction_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancel_reason: Optional[str] = None


class RejectedOccurrence(SQLModel):
    date: date
    time: str
    reason: str


class BookingCreateResult(SQLModel):
    bookings: List[BookingRead] = []
    rejected: List[RejectedOccurrence] = []
