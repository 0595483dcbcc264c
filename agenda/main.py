import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agenda.core.config import LOG_LEVEL
from agenda.database import create_db_and_tables
from agenda.routers import availability, bookings, services, staff, time_off
from agenda.scheduling.errors import SchedulingError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    create_db_and_tables()
    yield


app = FastAPI(lifespan=lifespan)
app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(staff.router)
app.include_router(services.router)
app.include_router(time_off.router)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    # violações de contrato (id desconhecido, transição inválida, recorrência mal configurada)
    logger.warning("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/")
def root():
    return {"message": "API agenda funcionando 🚀"}
