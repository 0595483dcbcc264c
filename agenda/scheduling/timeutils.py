"""
Time helpers bound to the business timezone.

Storage keeps naive UTC datetimes; the engine works with aware datetimes;
weekdays, working hours and "HH:MM" strings are read in the business timezone.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Tuple, Union

import pytz

from agenda.core.config import BUSINESS_TIMEZONE


# índice = date.weekday() (segunda = 0)
WEEKDAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def business_tz(name: str = BUSINESS_TIMEZONE) -> pytz.BaseTzInfo:
    return pytz.timezone(name)


def weekday_key(day: date) -> str:
    return WEEKDAY_KEYS[day.weekday()]


def parse_hhmm(value: Union[str, time]) -> time:
    """Aceita "HH:MM" ou datetime.time."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        hours, minutes = value.strip().split(":")
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Horário inválido: {value!r} (use HH:MM)") from e


def format_hhmm(value: Union[time, datetime, int]) -> str:
    if isinstance(value, int):
        return f"{value // 60:02d}:{value % 60:02d}"
    return value.strftime("%H:%M")


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def local_datetime(day: date, minutes: int, tz: pytz.BaseTzInfo) -> datetime:
    """Instante (aware) para `minutes` após a meia-noite local de `day`."""
    wall = datetime.combine(day, time(0, 0)) + timedelta(minutes=minutes)
    return tz.localize(wall)


def exists_locally(value: datetime, tz: pytz.BaseTzInfo) -> bool:
    """False quando o horário de parede de `value` cai no salto do horário de verão."""
    return tz.normalize(value).replace(tzinfo=None) == value.replace(tzinfo=None)


def local_day_bounds(day: date, tz: pytz.BaseTzInfo) -> Tuple[datetime, datetime]:
    start = tz.localize(datetime.combine(day, time(0, 0)))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time(0, 0)))
    return start, end


def to_local(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    return tz.normalize(value.astimezone(tz))


def ensure_aware(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    # datetime sem tzinfo vindo da API = horário local do negócio
    if value.tzinfo is None:
        return tz.localize(value)
    return value


def to_storage(value: datetime) -> datetime:
    return value.astimezone(pytz.UTC).replace(tzinfo=None)


def from_storage(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value
    return pytz.UTC.localize(value)


def add_months(value: datetime, months: int) -> datetime:
    """Avança meses de calendário mantendo dia e hora; dia 31 vira o último dia do mês."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))
