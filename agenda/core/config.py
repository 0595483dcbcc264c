import os
from pathlib import Path

from dotenv import load_dotenv

# .env na raiz do projeto
env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")

# fuso do negócio: define dia da semana e limites do expediente
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/Sao_Paulo")

# passo dos slots no calendário (independe da duração do serviço)
SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "15"))
if SLOT_STEP_MINUTES <= 0:
    raise ValueError("SLOT_STEP_MINUTES deve ser maior que zero")

# pending | confirmed
INITIAL_BOOKING_STATUS = os.getenv("INITIAL_BOOKING_STATUS", "confirmed")

# limite de ocorrências geradas por uma recorrência
MAX_RECURRENCE_OCCURRENCES = int(os.getenv("MAX_RECURRENCE_OCCURRENCES", "104"))

# JWT emitido pelo serviço de autenticação externo
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn("SECRET_KEY not set! Using insecure default", RuntimeWarning, stacklevel=2)
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
