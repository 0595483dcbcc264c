from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from agenda.core.security import get_current_admin
from agenda.database import get_session
from agenda.models.service import Service, ServiceCreate, ServiceRead, ServiceStaffLink
from agenda.models.staff import Staff
from agenda.scheduling.repositories import SqlServiceRepository


router = APIRouter(
    prefix="/services",
    tags=["services"]
)


def _to_read(session: Session, service: Service) -> ServiceRead:
    staff_ids = SqlServiceRepository(session).staff_ids_for(service.id)
    return ServiceRead(**service.model_dump(), staff_ids=staff_ids)


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=ServiceRead)
def create_service(
    payload: ServiceCreate,
    session: Session = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    if payload.id and session.get(Service, payload.id):
        raise HTTPException(status_code=400, detail="Serviço já cadastrado")

    for staff_id in payload.staff_ids:
        if not session.get(Staff, staff_id):
            raise HTTPException(status_code=404, detail=f"Profissional não encontrado: {staff_id}")

    service = Service(**payload.model_dump(exclude={"id", "staff_ids"}))
    if payload.id:
        service.id = payload.id
    session.add(service)

    # lista vazia = qualquer profissional atende
    for staff_id in set(payload.staff_ids):
        session.add(ServiceStaffLink(service_id=service.id, staff_id=staff_id))

    session.commit()
    session.refresh(service)

    return _to_read(session, service)


@router.get("/", response_model=List[ServiceRead])
def list_services(session: Session = Depends(get_session)):
    services = session.exec(
        select(Service).where(Service.is_active == True)  # noqa: E712
    ).all()

    return [_to_read(session, s) for s in services]
