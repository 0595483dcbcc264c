import logging

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from agenda.core.config import DATABASE_URL

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    # banco em memória precisa de uma conexão única compartilhada
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))


def create_db_and_tables():
    # garante que todas as tabelas estejam registradas no metadata
    from agenda.models import booking, service, staff, time_off  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ready (%s)", engine.url)


def get_session():
    with Session(engine) as session:
        yield session
