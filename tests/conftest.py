"""Shared fixtures: business timezone, engine snapshots, in-memory API."""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BUSINESS_TIMEZONE", "America/Sao_Paulo")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import date, datetime, time, timedelta

import pytest
import pytz
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from agenda.core.security import create_access_token
from agenda.database import get_session
from agenda.main import app
from agenda.models import booking, service, staff, time_off  # noqa: F401
from agenda.scheduling.types import (
    BookingInfo,
    DaySchedule,
    ServiceInfo,
    StaffInfo,
    TimeOffInfo,
    WeeklySchedule,
)

TZ = pytz.timezone("America/Sao_Paulo")

MONDAY = date(2024, 6, 3)


def at(day: date, hhmm: str) -> datetime:
    hours, minutes = hhmm.split(":")
    return TZ.localize(datetime.combine(day, time(int(hours), int(minutes))))


def weekday_schedule(start: str = "09:00", end: str = "17:00") -> WeeklySchedule:
    working = DaySchedule.working(start, end)
    return WeeklySchedule({d: working for d in ("monday", "tuesday", "wednesday", "thursday", "friday")})


def make_staff(staff_id: str = "staff_x", start: str = "09:00", end: str = "17:00") -> StaffInfo:
    return StaffInfo(id=staff_id, schedule=weekday_schedule(start, end), full_name=staff_id)


def make_booking(
    booking_id: str,
    staff_id: str,
    day: date,
    start: str,
    minutes: int = 30,
    status: str = "confirmed",
) -> BookingInfo:
    start_at = at(day, start)
    return BookingInfo(
        id=booking_id,
        staff_id=staff_id,
        start_at=start_at,
        end_at=start_at + timedelta(minutes=minutes),
        status=status,
    )


def make_time_off(staff_id: str, start_at: datetime, end_at: datetime, time_off_id: str = "to_1") -> TimeOffInfo:
    return TimeOffInfo(id=time_off_id, staff_id=staff_id, start_at=start_at, end_at=end_at)


@pytest.fixture
def haircut() -> ServiceInfo:
    return ServiceInfo(id="serv_1", duration_minutes=30)


# =========================
# API
# =========================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "owner@example.com", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seeded(client, admin_headers):
    """Two stylists working Mon-Fri 09:00-17:00, one open service, one restricted."""
    for staff_id, name in (("staff_1", "Mike Miller"), ("staff_2", "Sarah Chen")):
        resp = client.post("/staff/", json={"id": staff_id, "full_name": name}, headers=admin_headers)
        assert resp.status_code == 201, resp.text

    resp = client.post(
        "/services/",
        json={"id": "serv_1", "name": "Corte", "duration_minutes": 30, "price": 40.0},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text

    resp = client.post(
        "/services/",
        json={"id": "serv_2", "name": "Barba", "duration_minutes": 45, "staff_ids": ["staff_2"]},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    return client
