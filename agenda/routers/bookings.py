from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlmodel import Session

from agenda.database import get_session
from agenda.models.booking import (
    Booking,
    BookingCreate,
    BookingCreateResult,
    BookingRead,
    BookingUpdate,
    CancelRequest,
    CheckoutRequest,
    RejectedOccurrence,
)
from agenda.scheduling.recurrence import OccurrenceResult
from agenda.scheduling.timeutils import business_tz, format_hhmm, from_storage, to_local
from agenda.services.booking_service import BookingService


router = APIRouter(prefix="/bookings", tags=["bookings"])


def get_booking_service(session: Session = Depends(get_session)) -> BookingService:
    return BookingService(session)


def to_read(booking: Booking) -> BookingRead:
    tz = business_tz()
    return BookingRead(
        id=booking.id,
        customer_id=booking.customer_id,
        service_id=booking.service_id,
        staff_id=booking.staff_id,
        start_at=to_local(from_storage(booking.start_at), tz),
        end_at=to_local(from_storage(booking.end_at), tz),
        status=booking.status,
        recurrence_rule=booking.recurrence_rule,
        recurrence_end_date=booking.recurrence_end_date,
        parent_booking_id=booking.parent_booking_id,
        occurrence_number=booking.occurrence_number,
        transaction_id=booking.transaction_id,
        cancelled_at=from_storage(booking.cancelled_at) if booking.cancelled_at else None,
        cancelled_by=booking.cancelled_by,
        cancel_reason=booking.cancel_reason,
    )


def to_rejected(occurrence: OccurrenceResult) -> RejectedOccurrence:
    local_start = to_local(occurrence.booking.start_at, business_tz())
    return RejectedOccurrence(
        date=local_start.date(),
        time=format_hhmm(local_start),
        reason=occurrence.reason.value,
    )


# =========================
# CRIAR AGENDAMENTO (simples ou recorrente)
# - ocorrências válidas são gravadas, as rejeitadas voltam na resposta
# - 409 quando nenhuma pôde ser criada
# =========================
@router.post("/", status_code=status.HTTP_201_CREATED, response_model=BookingCreateResult)
def create_booking(
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    outcome = service.create(payload)
    result = BookingCreateResult(
        bookings=[to_read(b) for b in outcome.created],
        rejected=[to_rejected(o) for o in outcome.rejected],
    )

    if not outcome.created:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": "Horário indisponível",
                "rejected": [r.model_dump(mode="json") for r in result.rejected],
            },
        )

    return result


# =========================
# LISTAR AGENDAMENTOS
# =========================
@router.get("/", response_model=List[BookingRead])
def list_bookings(
    staff_id: Optional[str] = None,
    date: Optional[date] = None,
    status: Optional[str] = None,
    service: BookingService = Depends(get_booking_service),
):
    return [to_read(b) for b in service.list_bookings(staff_id=staff_id, day=date, status=status)]


@router.get("/{booking_id}", response_model=BookingRead)
def get_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    return to_read(service.get(booking_id))


# =========================
# REAGENDAR (arrastar e soltar / edição)
# - em caso de conflito nada muda e o cliente deve desfazer a mudança otimista
# =========================
@router.patch("/{booking_id}", response_model=BookingRead)
def reschedule_booking(
    booking_id: str,
    payload: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
):
    booking, result = service.reschedule(
        booking_id, new_staff_id=payload.staff_id, new_start_at=payload.start_at
    )

    if not result.ok:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": "Horário indisponível",
                "reason": result.reason.value,
                "conflicting_id": result.conflicting_id,
                "booking": to_read(booking).model_dump(mode="json"),
            },
        )

    return to_read(booking)


# =========================
# STATUS
# =========================
@router.post("/{booking_id}/confirm", response_model=BookingRead)
def confirm_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    return to_read(service.confirm(booking_id))


@router.post("/{booking_id}/complete", response_model=BookingRead)
def complete_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    return to_read(service.complete(booking_id))


@router.post("/{booking_id}/cancel", response_model=BookingRead)
def cancel_booking(
    booking_id: str,
    payload: Optional[CancelRequest] = None,
    service: BookingService = Depends(get_booking_service),
):
    # cancelar de novo não é erro: devolve o agendamento como está
    payload = payload or CancelRequest()
    return to_read(service.cancel(booking_id, payload.reason, payload.cancelled_by))


# =========================
# CHECKOUT (só depois de concluído)
# =========================
@router.post("/{booking_id}/checkout", response_model=BookingRead)
def checkout_booking(
    booking_id: str,
    payload: CheckoutRequest,
    service: BookingService = Depends(get_booking_service),
):
    return to_read(service.checkout(booking_id, payload.transaction_id))
