"""
Recurrence Expander

Turns a weekly/monthly repeat rule into a bounded, chronological series of
occurrences and validates each one. A rejected occurrence is reported and the
series carries on; accepted occurrences count as existing bookings for the
ones after them.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, List, Optional
from uuid import uuid4

import pytz

from agenda.core.config import MAX_RECURRENCE_OCCURRENCES
from agenda.scheduling.conflicts import validate_booking
from agenda.scheduling.errors import InvalidRecurrenceConfig
from agenda.scheduling.timeutils import add_months, to_local
from agenda.scheduling.types import (
    BookingInfo,
    ConflictReason,
    RecurrenceRule,
    TimeOffInfo,
    ValidationResult,
    WeeklySchedule,
)


@dataclass(frozen=True)
class OccurrenceResult:
    booking: BookingInfo
    result: ValidationResult

    @property
    def accepted(self) -> bool:
        return self.result.ok

    @property
    def reason(self) -> Optional[ConflictReason]:
        return self.result.reason

    @property
    def day(self) -> date:
        return self.booking.start_at.date()


def parse_rule(rule) -> RecurrenceRule:
    try:
        return RecurrenceRule(rule)
    except ValueError as e:
        raise InvalidRecurrenceConfig(f"Regra de recorrência inválida: {rule!r} (use weekly ou monthly)") from e


def occurrence_starts(
    start_at: datetime,
    rule: RecurrenceRule,
    until: date,
    tz: pytz.BaseTzInfo,
) -> Iterator[datetime]:
    """
    Instantes de início de cada ocorrência, a partir de start_at (inclusive).

    Trabalha no horário de parede local: a hora do dia se mantém mesmo quando o
    offset do fuso muda. Mensal conta meses a partir da data base, então 31/jan
    vira 29/fev e depois 31/mar.
    """
    rule = parse_rule(rule)
    base = to_local(start_at, tz).replace(tzinfo=None)

    n = 0
    while True:
        if rule == RecurrenceRule.weekly:
            wall = base + timedelta(weeks=n)
        else:
            wall = add_months(base, n)

        if wall.date() > until:
            return

        yield tz.localize(wall)
        n += 1


def plan_occurrences(
    start_at: datetime,
    rule,
    until: Optional[date],
    tz: pytz.BaseTzInfo,
    max_occurrences: int = MAX_RECURRENCE_OCCURRENCES,
) -> List[datetime]:
    if until is None:
        raise InvalidRecurrenceConfig("recurrence_end_date é obrigatório para reservas recorrentes")

    rule = parse_rule(rule)
    if until < to_local(start_at, tz).date():
        raise InvalidRecurrenceConfig("recurrence_end_date não pode ser anterior à primeira ocorrência")

    starts = []
    for start in occurrence_starts(start_at, rule, until, tz):
        starts.append(start)
        if len(starts) > max_occurrences:
            raise InvalidRecurrenceConfig(
                f"A recorrência gera mais de {max_occurrences} ocorrências"
            )
    return starts


def expand_recurrence(
    base: BookingInfo,
    rule,
    until: Optional[date],
    schedule: WeeklySchedule,
    time_offs: Iterable[TimeOffInfo],
    existing: Iterable[BookingInfo],
    tz: pytz.BaseTzInfo,
    max_occurrences: int = MAX_RECURRENCE_OCCURRENCES,
) -> List[OccurrenceResult]:
    """
    Expande e valida a série inteira.

    Args:
        base: primeira ocorrência (staff, duração e status são copiados)
        rule: weekly | monthly
        until: última data (local) permitida, inclusive

    Returns:
        list[OccurrenceResult] em ordem cronológica, aceitas e rejeitadas.
    """
    duration = base.end_at - base.start_at
    time_offs = list(time_offs)
    working_set = list(existing)

    results = []
    for start in plan_occurrences(base.start_at, rule, until, tz, max_occurrences):
        candidate = replace(base, id=uuid4().hex, start_at=start, end_at=start + duration)
        result = validate_booking(candidate, schedule, time_offs, working_set, tz)
        if result.ok:
            # ocorrências aceitas ocupam o horário para as próximas
            working_set.append(candidate)
        results.append(OccurrenceResult(booking=candidate, result=result))

    return results
