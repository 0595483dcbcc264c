from datetime import date
from typing import Dict, List, Optional, Union

from fastapi import APIRouter, Depends
from sqlmodel import Session

from agenda.database import get_session
from agenda.scheduling.availability import get_combined_availability, get_staff_slots
from agenda.scheduling.repositories import sql_repositories
from agenda.scheduling.timeutils import business_tz


router = APIRouter(prefix="/availability", tags=["availability"])


# =========================
# HORÁRIOS DISPONÍVEIS (dia + serviço)
# GET /availability?service_id=...&date=2024-06-03              -> {"09:00": ["staff_1", ...]}
# GET /availability?service_id=...&date=2024-06-03&staff_id=... -> ["09:00", "09:15", ...]
# =========================
@router.get("/")
def get_availability(
    service_id: str,
    date: date,
    staff_id: Optional[str] = None,
    session: Session = Depends(get_session),
) -> Dict:
    repos = sql_repositories(session)
    tz = business_tz()

    slots: Union[List[str], Dict[str, List[str]]]
    if staff_id and staff_id != "any":
        slots = get_staff_slots(repos, staff_id, service_id, date, tz)
    else:
        slots = get_combined_availability(repos, service_id, date, tz)

    return {
        "service_id": service_id,
        "staff_id": staff_id if staff_id != "any" else None,
        "date": date.isoformat(),
        "timezone": tz.zone,
        "slots": slots,
    }
