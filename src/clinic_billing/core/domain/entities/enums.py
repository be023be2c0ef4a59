from __future__ import annotations

from enum import Enum


class _ChoicesMixin:
    @classmethod
    def choices(cls) -> list[tuple[str, str]]:
        return [(m.value, m.value) for m in cls]  # type: ignore[attr-defined]

    @classmethod
    def values(cls) -> set[str]:
        return {m.value for m in cls}  # type: ignore[attr-defined]


class AppointmentStatus(_ChoicesMixin, str, Enum):
    AGENDADO = "AGENDADO"
    CONFIRMADO = "CONFIRMADO"
    FINALIZADO = "FINALIZADO"
    CANCELADO_ACORDADO = "CANCELADO_ACORDADO"
    CANCELADO_FALTA = "CANCELADO_FALTA"
    CANCELADO_PROFISSIONAL = "CANCELADO_PROFISSIONAL"


class AppointmentType(_ChoicesMixin, str, Enum):
    CONSULTA = "CONSULTA"
    TAREFA = "TAREFA"
    LEMBRETE = "LEMBRETE"
    NOTA = "NOTA"
    REUNIAO = "REUNIAO"


class RecurrenceType(_ChoicesMixin, str, Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"

    @property
    def interval_days(self) -> int:
        # MONTHLY é um intervalo fixo de 28 dias, sem alinhamento ao calendário
        return {"WEEKLY": 7, "BIWEEKLY": 14, "MONTHLY": 28}[self.value]


class RecurrenceEndType(_ChoicesMixin, str, Enum):
    BY_DATE = "BY_DATE"
    BY_OCCURRENCES = "BY_OCCURRENCES"
    INDEFINITE = "INDEFINITE"


class InvoiceStatus(_ChoicesMixin, str, Enum):
    PENDENTE = "PENDENTE"
    ENVIADO = "ENVIADO"
    PAGO = "PAGO"
    CANCELADO = "CANCELADO"


class InvoiceItemType(_ChoicesMixin, str, Enum):
    SESSAO_REGULAR = "SESSAO_REGULAR"
    SESSAO_EXTRA = "SESSAO_EXTRA"
    SESSAO_GRUPO = "SESSAO_GRUPO"
    REUNIAO_ESCOLA = "REUNIAO_ESCOLA"
    CREDITO = "CREDITO"


class BillingMode(_ChoicesMixin, str, Enum):
    PER_SESSION = "PER_SESSION"
    MONTHLY_FIXED = "MONTHLY_FIXED"


class MemberRole(_ChoicesMixin, str, Enum):
    ADMIN = "ADMIN"
    PROFESSIONAL = "PROFESSIONAL"


BILLABLE_STATUSES: frozenset[str] = frozenset({
    AppointmentStatus.AGENDADO.value,
    AppointmentStatus.CONFIRMADO.value,
    AppointmentStatus.FINALIZADO.value,
})

CANCELLED_STATUSES: frozenset[str] = frozenset({
    AppointmentStatus.CANCELADO_ACORDADO.value,
    AppointmentStatus.CANCELADO_FALTA.value,
    AppointmentStatus.CANCELADO_PROFISSIONAL.value,
})

# Faturas que a regeneração nunca toca
LOCKED_INVOICE_STATUSES: frozenset[str] = frozenset({
    InvoiceStatus.PAGO.value,
    InvoiceStatus.ENVIADO.value,
})

INVOICEABLE_APPOINTMENT_TYPES: tuple[str, ...] = (
    AppointmentType.CONSULTA.value,
    AppointmentType.REUNIAO.value,
)
