"""
Expansão de regras de recorrência em ocorrências concretas.

Uma recorrência gera datas no mesmo dia da semana, espaçadas por um intervalo
fixo (7, 14 ou 28 dias). A primeira ocorrência é a primeira data >= início que
cai no dia da semana pedido. Filtros complementares removem datas de exceção,
horários já existentes e conflitos com a agenda do profissional.
"""
from __future__ import annotations

import calendar
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from clinic_billing.core.domain.entities.enums import RecurrenceEndType, RecurrenceType
from clinic_billing.core.domain.events.exceptions import RecurrenceValidationError

MAX_OCCURRENCES = 52
INDEFINITE_WINDOW_MONTHS = 6

RECURRENCE_TYPE_LABELS = {
    RecurrenceType.WEEKLY.value: "Semanal",
    RecurrenceType.BIWEEKLY.value: "Quinzenal",
    RecurrenceType.MONTHLY.value: "Mensal",
}


@dataclass(frozen=True, slots=True)
class Occurrence:
    date: date
    scheduled_at: datetime
    end_at: datetime


def js_weekday(day: date) -> int:
    """Dia da semana com domingo = 0 (date.weekday() usa segunda = 0)."""
    return (day.weekday() + 1) % 7


def first_occurrence_on_or_after(start_date: date, day_of_week: int) -> date:
    return start_date + timedelta(days=(day_of_week - js_weekday(start_date)) % 7)


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _zone(tz: str | tzinfo) -> tzinfo:
    return ZoneInfo(tz) if isinstance(tz, str) else tz


def iter_occurrences(
    start_date: date,
    window_end: date,
    day_of_week: int,
    start_time: time,
    duration_minutes: int,
    recurrence_type: str,
    tz: str | tzinfo = "America/Sao_Paulo",
) -> Iterator[Occurrence]:
    if not 0 <= day_of_week <= 6:
        raise RecurrenceValidationError("Dia da semana deve estar entre 0 (domingo) e 6 (sábado)")
    if duration_minutes <= 0:
        raise RecurrenceValidationError("Duração deve ser maior que zero")

    interval = timedelta(days=RecurrenceType(recurrence_type).interval_days)
    zone = _zone(tz)
    current = first_occurrence_on_or_after(start_date, day_of_week)
    while current <= window_end:
        scheduled_at = datetime.combine(current, start_time, tzinfo=zone)
        yield Occurrence(
            date=current,
            scheduled_at=scheduled_at,
            end_at=scheduled_at + timedelta(minutes=duration_minutes),
        )
        current += interval


def expand_occurrences(
    start_date: date,
    window_end: date,
    day_of_week: int,
    start_time: time,
    duration_minutes: int,
    recurrence_type: str,
    tz: str | tzinfo = "America/Sao_Paulo",
    limit: int | None = None,
) -> list[Occurrence]:
    occurrences = []
    for occ in iter_occurrences(start_date, window_end, day_of_week, start_time, duration_minutes, recurrence_type, tz):
        if limit is not None and len(occurrences) >= limit:
            break
        occurrences.append(occ)
    return occurrences


def exclude_existing(occurrences: Iterable[Occurrence], existing_start_times: Iterable[datetime]) -> list[Occurrence]:
    taken = set(existing_start_times)
    return [occ for occ in occurrences if occ.scheduled_at not in taken]


def exclude_exceptions(occurrences: Iterable[Occurrence], exceptions: Iterable[str | date]) -> list[Occurrence]:
    skipped = {e if isinstance(e, str) else e.isoformat() for e in exceptions}
    return [occ for occ in occurrences if occ.date.isoformat() not in skipped]


def exclude_conflicts(
    occurrences: Iterable[Occurrence],
    busy_intervals: Iterable[tuple[datetime, datetime]],
    buffer_minutes: int = 0,
) -> list[Occurrence]:
    buffer = timedelta(minutes=buffer_minutes)
    busy = list(busy_intervals)
    return [
        occ for occ in occurrences
        if not any(occ.scheduled_at < end + buffer and occ.end_at + buffer > start for start, end in busy)
    ]


# ───────────────────────────────────────────────
# Regras de término e validação
# ───────────────────────────────────────────────
def validate_recurrence(
    recurrence_end_type: str,
    end_date: date | None = None,
    occurrences: int | None = None,
) -> None:
    if recurrence_end_type == RecurrenceEndType.BY_OCCURRENCES.value:
        if not occurrences or occurrences < 1:
            raise RecurrenceValidationError("Número de ocorrências deve ser pelo menos 1")
        if occurrences > MAX_OCCURRENCES:
            raise RecurrenceValidationError(f"Máximo de {MAX_OCCURRENCES} ocorrências permitido")
    elif recurrence_end_type == RecurrenceEndType.BY_DATE.value:
        if not end_date:
            raise RecurrenceValidationError("Data final é obrigatória para recorrência por data")
    elif recurrence_end_type != RecurrenceEndType.INDEFINITE.value:
        raise RecurrenceValidationError(f"Tipo de término inválido: {recurrence_end_type}")


def occurrence_window(
    start_date: date,
    day_of_week: int,
    recurrence_type: str,
    recurrence_end_type: str,
    end_date: date | None = None,
    occurrences: int | None = None,
) -> tuple[date, int | None]:
    """
    Fim da janela de geração e limite de ocorrências para cada tipo de término.
    INDEFINITE usa uma janela móvel de 6 meses, estendida periodicamente.
    """
    validate_recurrence(recurrence_end_type, end_date, occurrences)
    if recurrence_end_type == RecurrenceEndType.BY_DATE.value:
        return end_date, MAX_OCCURRENCES
    if recurrence_end_type == RecurrenceEndType.BY_OCCURRENCES.value:
        first = first_occurrence_on_or_after(start_date, day_of_week)
        interval = RecurrenceType(recurrence_type).interval_days
        return first + timedelta(days=interval * (occurrences - 1)), occurrences
    return add_months(start_date, INDEFINITE_WINDOW_MONTHS), None


def add_exception(exceptions: Iterable[str], day: date) -> list[str]:
    return sorted({*exceptions, day.isoformat()})


def remove_exception(exceptions: Iterable[str], day: date) -> list[str]:
    return sorted(set(exceptions) - {day.isoformat()})


def format_recurrence_summary(
    recurrence_type: str,
    recurrence_end_type: str,
    occurrences: int | None = None,
    end_date: date | None = None,
) -> str:
    summary = RECURRENCE_TYPE_LABELS[recurrence_type]
    if recurrence_end_type == RecurrenceEndType.BY_OCCURRENCES.value and occurrences:
        summary += f" - {occurrences} sessões"
    elif recurrence_end_type == RecurrenceEndType.BY_DATE.value and end_date:
        summary += f" - até {end_date.strftime('%d/%m/%Y')}"
    elif recurrence_end_type == RecurrenceEndType.INDEFINITE.value:
        summary += " - sem data de fim"
    return summary
