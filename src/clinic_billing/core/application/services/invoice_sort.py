from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from typing import Any


def weekday_rank(day_of_week: int) -> int:
    """Segunda = 0 … domingo = 6 (day_of_week usa domingo = 0)."""
    return 6 if day_of_week == 0 else day_of_week - 1


def pick_earliest_recurrence(recurrences: Iterable[Any]) -> Any | None:
    ordered = sorted(recurrences, key=lambda r: (weekday_rank(r.day_of_week), r.start_time))
    return ordered[0] if ordered else None


def earliest_recurrence_by_patient(recurrences: Iterable[Any]) -> dict[uuid.UUID, Any]:
    grouped: dict[uuid.UUID, list[Any]] = {}
    for rec in recurrences:
        if rec.patient_id is not None:
            grouped.setdefault(rec.patient_id, []).append(rec)
    return {pid: pick_earliest_recurrence(recs) for pid, recs in grouped.items()}


def sort_invoices_by_recurrence(
    invoices: Sequence[Any],
    recurrence_map: Mapping[uuid.UUID, Any],
    patient_names: Mapping[uuid.UUID, str],
) -> list[Any]:
    """
    Ordena faturas pela recorrência mais cedo do paciente na semana
    (segunda 08:00 primeiro, domingo por último). Sem recorrência vai para o fim,
    em ordem alfabética.
    """
    def _key(invoice):
        name = (patient_names.get(invoice.patient_id) or "").casefold()
        rec = recurrence_map.get(invoice.patient_id)
        if rec is None:
            return (1, 0, "", name)
        return (0, weekday_rank(rec.day_of_week), rec.start_time.strftime("%H:%M"), name)

    return sorted(invoices, key=_key)
