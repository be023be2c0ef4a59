from __future__ import annotations

from datetime import datetime
from typing import Any

from clinic_billing.core.domain.entities.enums import AppointmentStatus as S

_CANCELLATIONS = (S.CANCELADO_ACORDADO.value, S.CANCELADO_FALTA.value, S.CANCELADO_PROFISSIONAL.value)

VALID_TRANSITIONS: dict[str, tuple[str, ...]] = {
    S.AGENDADO.value: (S.CONFIRMADO.value, S.FINALIZADO.value, *_CANCELLATIONS),
    S.CONFIRMADO.value: (S.FINALIZADO.value, *_CANCELLATIONS),
    S.FINALIZADO.value: (),
    S.CANCELADO_ACORDADO.value: (S.CANCELADO_FALTA.value, S.CANCELADO_PROFISSIONAL.value, S.AGENDADO.value),
    S.CANCELADO_FALTA.value: (S.CANCELADO_ACORDADO.value, S.CANCELADO_PROFISSIONAL.value, S.AGENDADO.value),
    S.CANCELADO_PROFISSIONAL.value: (S.CANCELADO_ACORDADO.value, S.CANCELADO_FALTA.value, S.AGENDADO.value),
}

STATUS_LABELS: dict[str, str] = {
    S.AGENDADO.value: "Agendado",
    S.CONFIRMADO.value: "Confirmado",
    S.FINALIZADO.value: "Finalizado",
    S.CANCELADO_ACORDADO.value: "Desmarcou",
    S.CANCELADO_FALTA.value: "Cancelado (Falta)",
    S.CANCELADO_PROFISSIONAL.value: "Cancelado (sem cobrança)",
}


def is_valid_transition(current: str, target: str) -> bool:
    return target in VALID_TRANSITIONS.get(current, ())


def allowed_transitions(current: str) -> list[str]:
    return list(VALID_TRANSITIONS.get(current, ()))


def apply_status_change(appointment: Any, target: str, now: datetime, reason: str | None = None) -> None:
    """Atualiza status e carimbos de data conforme o novo status."""
    appointment.status = target
    if target == S.CONFIRMADO.value:
        appointment.confirmed_at = now
    elif target in _CANCELLATIONS:
        appointment.cancelled_at = now
        if reason is not None:
            appointment.cancellation_reason = reason
    elif target == S.AGENDADO.value:
        appointment.confirmed_at = None
        appointment.cancelled_at = None
        appointment.cancellation_reason = None


def should_update_last_visit(target: str) -> bool:
    return target == S.FINALIZADO.value
