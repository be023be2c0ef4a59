from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from clinic_billing.core.domain.entities.enums import InvoiceStatus

REPASSE_BILLABLE_INVOICE_STATUSES = (
    InvoiceStatus.PENDENTE.value,
    InvoiceStatus.ENVIADO.value,
    InvoiceStatus.PAGO.value,
)

_CENTS = Decimal("0.01")


def _round2(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class RepasseCalc:
    gross_value: Decimal
    tax_amount: Decimal
    after_tax: Decimal
    repasse_value: Decimal


@dataclass(frozen=True, slots=True)
class RepasseLine:
    invoice_id: Any
    patient_name: str
    total_sessions: int
    calc: RepasseCalc


@dataclass(frozen=True, slots=True)
class RepasseSummary:
    total_invoices: int
    total_sessions: int
    total_gross: Decimal
    total_tax: Decimal
    total_after_tax: Decimal
    total_repasse: Decimal


def calculate_repasse(gross_value: Decimal, tax_percent: Decimal, repasse_percent: Decimal) -> RepasseCalc:
    """Repasse do profissional: (bruto - imposto da clínica) × percentual."""
    gross = Decimal(gross_value)
    tax_amount = _round2(gross * Decimal(tax_percent) / 100)
    after_tax = _round2(gross - tax_amount)
    repasse_value = _round2(after_tax * Decimal(repasse_percent) / 100)
    return RepasseCalc(gross, tax_amount, after_tax, repasse_value)


def build_repasse_lines(
    invoices: Iterable[Any],
    patient_names: Mapping[Any, str],
    tax_percent: Decimal,
    repasse_percent: Decimal,
) -> list[RepasseLine]:
    return [
        RepasseLine(
            invoice_id=inv.id,
            patient_name=patient_names.get(inv.patient_id, ""),
            total_sessions=inv.total_sessions,
            calc=calculate_repasse(inv.total_amount, tax_percent, repasse_percent),
        )
        for inv in invoices
    ]


def summarize_repasse(lines: Iterable[RepasseLine]) -> RepasseSummary:
    lines = list(lines)
    zero = Decimal("0")
    return RepasseSummary(
        total_invoices=len(lines),
        total_sessions=sum(line.total_sessions for line in lines),
        total_gross=_round2(sum((line.calc.gross_value for line in lines), zero)),
        total_tax=_round2(sum((line.calc.tax_amount for line in lines), zero)),
        total_after_tax=_round2(sum((line.calc.after_tax for line in lines), zero)),
        total_repasse=_round2(sum((line.calc.repasse_value for line in lines), zero)),
    )
