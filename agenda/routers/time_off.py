import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from agenda.core.security import get_current_admin
from agenda.database import get_session
from agenda.models.staff import Staff
from agenda.models.time_off import ALL_STAFF, TimeOff, TimeOffCreate, TimeOffRead
from agenda.scheduling.timeutils import business_tz, ensure_aware, from_storage, to_local, to_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/time-off", tags=["time-off"])


def _to_read(row: TimeOff) -> TimeOffRead:
    tz = business_tz()
    return TimeOffRead(
        id=row.id,
        staff_id=row.staff_id,
        start_at=to_local(from_storage(row.start_at), tz),
        end_at=to_local(from_storage(row.end_at), tz),
        reason=row.reason,
    )


@router.get("/", response_model=List[TimeOffRead])
def list_time_off(
    session: Session = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    rows = session.exec(select(TimeOff).order_by(TimeOff.start_at)).all()
    return [_to_read(r) for r in rows]


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=TimeOffRead)
def create_time_off(
    payload: TimeOffCreate,
    session: Session = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    tz = business_tz()
    start_at = ensure_aware(payload.start_at, tz)
    end_at = ensure_aware(payload.end_at, tz)

    if end_at <= start_at:
        raise HTTPException(status_code=400, detail="end_at deve ser maior que start_at")

    # "all" fecha o negócio inteiro
    if payload.staff_id != ALL_STAFF and not session.get(Staff, payload.staff_id):
        raise HTTPException(status_code=404, detail="Profissional não encontrado")

    row = TimeOff(
        staff_id=payload.staff_id,
        start_at=to_storage(start_at),
        end_at=to_storage(end_at),
        reason=payload.reason,
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    logger.info("Time off %s created for %s by %s", row.id, row.staff_id, current_admin.subject)
    return _to_read(row)


@router.delete("/{time_off_id}")
def delete_time_off(
    time_off_id: str,
    session: Session = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    row = session.get(TimeOff, time_off_id)
    if not row:
        raise HTTPException(status_code=404, detail="Folga não encontrada")

    session.delete(row)
    session.commit()
    return {"message": "Folga removida"}
