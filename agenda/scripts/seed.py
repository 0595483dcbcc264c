from datetime import datetime, time, timedelta

from sqlmodel import Session, select

from agenda.core.security import create_access_token
from agenda.database import create_db_and_tables, engine
from agenda.models.service import Service, ServiceStaffLink
from agenda.models.staff import Staff, StaffSchedule
from agenda.models.time_off import TimeOff
from agenda.scheduling.timeutils import business_tz, to_storage
from agenda.scheduling.types import default_schedule


STAFF = [
    dict(id="staff_1", full_name="Mike Miller", email="mike.m@example.com", role="Stylist"),
    dict(id="staff_2", full_name="Sarah Chen", email="sarah.c@example.com", role="Manager"),
    dict(id="staff_3", full_name="David Lee", email="david.l@example.com", role="Assistant"),
]

SERVICES = [
    # staff_ids vazio = qualquer profissional
    (dict(id="serv_1", name="Corte", duration_minutes=30, price=40.0), []),
    (dict(id="serv_2", name="Barba", duration_minutes=20, price=30.0), ["staff_1", "staff_2"]),
    (dict(id="serv_3", name="Coloração", duration_minutes=90, price=75.0), ["staff_1"]),
]


def main():
    create_db_and_tables()
    tz = business_tz()

    with Session(engine) as session:
        # 1) profissionais com o expediente padrão (seg-sex 09-17)
        for data in STAFF:
            if session.get(Staff, data["id"]):
                continue
            session.add(Staff(**data))
            for weekday, day in default_schedule().days.items():
                # David não trabalha sexta
                is_working = day.is_working and not (data["id"] == "staff_3" and weekday == "friday")
                session.add(
                    StaffSchedule(
                        staff_id=data["id"],
                        weekday=weekday,
                        is_working=is_working,
                        start_time=day.start_time,
                        end_time=day.end_time,
                    )
                )

        # 2) serviços
        for data, staff_ids in SERVICES:
            if session.get(Service, data["id"]):
                continue
            session.add(Service(**data))
            for staff_id in staff_ids:
                session.add(ServiceStaffLink(service_id=data["id"], staff_id=staff_id))

        # 3) folga de exemplo - amanhã 15:00-16:00 para staff_1
        tomorrow = (datetime.now(tz) + timedelta(days=1)).date()
        block_start = to_storage(tz.localize(datetime.combine(tomorrow, time(15, 0))))
        block_end = to_storage(tz.localize(datetime.combine(tomorrow, time(16, 0))))

        exists_block = session.exec(
            select(TimeOff).where(
                TimeOff.staff_id == "staff_1",
                TimeOff.start_at == block_start,
                TimeOff.end_at == block_end,
            )
        ).first()

        if not exists_block:
            session.add(TimeOff(staff_id="staff_1", start_at=block_start, end_at=block_end, reason="Teste"))

        session.commit()

    print("✅ Seed concluído!")
    print("Profissionais: staff_1, staff_2, staff_3 (seg-sex 09-17; staff_3 folga sexta)")
    print("Serviços: serv_1 (qualquer), serv_2, serv_3")
    print("Folga: staff_1 amanhã 15:00-16:00 (se não existia)")
    print("Token admin (dev):", create_access_token({"sub": "seed", "role": "admin"}, timedelta(days=1)))


if __name__ == "__main__":
    main()
