from typing import List, Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field


class ServiceBase(SQLModel):
    name: str
    duration_minutes: int = Field(gt=0)
    price: float = 0.0
    is_active: bool = True


class Service(ServiceBase, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)


class ServiceStaffLink(SQLModel, table=True):
    # vazio para um serviço = qualquer profissional atende
    service_id: str = Field(foreign_key="service.id", primary_key=True)
    staff_id: str = Field(foreign_key="staff.id", primary_key=True)


class ServiceCreate(ServiceBase):
    id: Optional[str] = None
    staff_ids: List[str] = []


class ServiceRead(ServiceBase):
    id: str
    staff_ids: List[str] = []
