from datetime import datetime
from uuid import uuid4

from sqlmodel import SQLModel, Field


# staff_id = "all" bloqueia o negócio inteiro
ALL_STAFF = "all"


class TimeOffBase(SQLModel):
    staff_id: str = Field(index=True)
    start_at: datetime = Field(index=True)
    end_at: datetime = Field(index=True)
    reason: str = "Folga"


class TimeOff(TimeOffBase, table=True):
    # instantes gravados em UTC sem tzinfo
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)


class TimeOffCreate(TimeOffBase):
    pass


class TimeOffRead(TimeOffBase):
    id: str
