from typing import Dict, Optional
from datetime import time
from uuid import uuid4

from sqlmodel import SQLModel, Field


class StaffBase(SQLModel):
    full_name: str
    email: Optional[str] = None
    role: str = "Stylist"  # Owner | Manager | Stylist | Assistant
    is_active: bool = True


class Staff(StaffBase, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)


class StaffSchedule(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    staff_id: str = Field(foreign_key="staff.id", index=True)

    # sunday | monday | ... | saturday
    weekday: str = Field(index=True)

    is_working: bool = False

    start_time: Optional[time] = None
    end_time: Optional[time] = None


class DayScheduleIn(SQLModel):
    is_working: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class StaffCreate(StaffBase):
    id: Optional[str] = None
    # dias ausentes = folga; sem schedule usa o padrão seg-sex 09-17
    schedule: Optional[Dict[str, DayScheduleIn]] = None
