import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from agenda.core.security import get_current_admin
from agenda.database import get_session
from agenda.models.staff import DayScheduleIn, Staff, StaffCreate, StaffSchedule
from agenda.scheduling.errors import MalformedSchedule
from agenda.scheduling.timeutils import WEEKDAY_KEYS, format_hhmm
from agenda.scheduling.types import DaySchedule, default_schedule

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["staff"])


def _check_day(payload: DayScheduleIn) -> DaySchedule:
    try:
        return DaySchedule(payload.is_working, payload.start_time, payload.end_time)
    except MalformedSchedule as e:
        raise HTTPException(status_code=400, detail=e.message)


def _upsert_day(session: Session, staff_id: str, weekday: str, day: DaySchedule) -> StaffSchedule:
    row = session.exec(
        select(StaffSchedule).where(
            StaffSchedule.staff_id == staff_id,
            StaffSchedule.weekday == weekday,
        )
    ).first()

    if not row:
        row = StaffSchedule(staff_id=staff_id, weekday=weekday)

    row.is_working = day.is_working
    row.start_time = day.start_time
    row.end_time = day.end_time
    session.add(row)
    return row


def _serialize_schedule(session: Session, staff_id: str) -> Dict[str, Dict]:
    rows = session.exec(select(StaffSchedule).where(StaffSchedule.staff_id == staff_id)).all()
    by_day = {r.weekday: r for r in rows}

    schedule = {}
    for weekday in WEEKDAY_KEYS:
        row = by_day.get(weekday)
        if row and row.is_working:
            schedule[weekday] = {
                "is_working": True,
                "start_time": format_hhmm(row.start_time),
                "end_time": format_hhmm(row.end_time),
            }
        else:
            schedule[weekday] = {"is_working": False, "start_time": None, "end_time": None}
    return schedule


# =========================
# CADASTRAR PROFISSIONAL
# - sem schedule: seg-sex 09:00-17:00
# =========================
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_staff(
    payload: StaffCreate,
    session: Session = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    if payload.id and session.get(Staff, payload.id):
        raise HTTPException(status_code=400, detail="Profissional já cadastrado")

    if payload.schedule is None:
        days = dict(default_schedule().days)
    else:
        unknown = set(payload.schedule) - set(WEEKDAY_KEYS)
        if unknown:
            raise HTTPException(status_code=400, detail=f"Dias inválidos: {sorted(unknown)}")
        days = {k: _check_day(v) for k, v in payload.schedule.items()}

    staff = Staff(**payload.model_dump(exclude={"id", "schedule"}))
    if payload.id:
        staff.id = payload.id
    session.add(staff)

    for weekday, day in days.items():
        _upsert_day(session, staff.id, weekday, day)

    session.commit()
    session.refresh(staff)
    logger.info("Staff %s created by %s", staff.id, current_admin.subject)

    return {**staff.model_dump(), "schedule": _serialize_schedule(session, staff.id)}


@router.get("/")
def list_staff(session: Session = Depends(get_session)):
    return session.exec(select(Staff).order_by(Staff.id)).all()


@router.get("/{staff_id}/schedule")
def get_schedule(staff_id: str, session: Session = Depends(get_session)):
    if not session.get(Staff, staff_id):
        raise HTTPException(status_code=404, detail="Profissional não encontrado")
    return _serialize_schedule(session, staff_id)


# =========================
# EXPEDIENTE DE UM DIA
# PUT /staff/{id}/schedule/monday
# =========================
@router.put("/{staff_id}/schedule/{weekday}")
def upsert_schedule_day(
    staff_id: str,
    weekday: str,
    payload: DayScheduleIn,
    session: Session = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    """
    weekday: sunday, monday, ..., saturday
    """
    weekday = weekday.lower()
    if weekday not in WEEKDAY_KEYS:
        raise HTTPException(status_code=400, detail="weekday deve ser sunday..saturday")

    if not session.get(Staff, staff_id):
        raise HTTPException(status_code=404, detail="Profissional não encontrado")

    day = _check_day(payload)
    row = _upsert_day(session, staff_id, weekday, day)
    session.commit()
    session.refresh(row)
    return row
