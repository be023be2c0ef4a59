"""
Montagem dos itens e totais de uma fatura mensal.

Entrada: agendamentos já classificados, valor da sessão (ou mensalidade no
modo MONTHLY_FIXED) e créditos disponíveis. Saída: itens em ordem estável
(regulares, extras, grupo, reuniões escolares, créditos) e totais derivados.
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from zoneinfo import ZoneInfo

from clinic_billing.core.application.services.appointment_classifier import ClassifiedAppointments
from clinic_billing.core.application.services.utils.formatters import BrazilianFormatter
from clinic_billing.core.domain.entities.enums import BillingMode, InvoiceItemType
from clinic_billing.core.domain.entities.invoice_entity import InvoiceItemEntity

ITEM_DESCRIPTIONS = {
    InvoiceItemType.SESSAO_REGULAR.value: "Sessão",
    InvoiceItemType.SESSAO_EXTRA.value: "Sessão extra",
    InvoiceItemType.SESSAO_GRUPO.value: "Sessão grupo",
    InvoiceItemType.REUNIAO_ESCOLA.value: "Reunião escola",
}

_BUCKETS = (
    ("regular", InvoiceItemType.SESSAO_REGULAR.value),
    ("extra", InvoiceItemType.SESSAO_EXTRA.value),
    ("group", InvoiceItemType.SESSAO_GRUPO.value),
    ("school_meeting", InvoiceItemType.REUNIAO_ESCOLA.value),
)

EXTRA_ITEM_TYPES = frozenset({InvoiceItemType.SESSAO_EXTRA.value, InvoiceItemType.REUNIAO_ESCOLA.value})


@dataclass(frozen=True, slots=True)
class InvoiceTotals:
    total_sessions: int
    credits_applied: int
    extras_added: int
    total_amount: Decimal


def _local(dt: datetime, tz: str | tzinfo) -> datetime:
    return dt.astimezone(ZoneInfo(tz) if isinstance(tz, str) else tz)


def _new_item(type_: str, description: str, quantity: int, unit_price: Decimal, total: Decimal,
              appointment_id: uuid.UUID | None = None) -> InvoiceItemEntity:
    return InvoiceItemEntity(
        id=uuid.uuid4(),
        invoice_id=None,
        type=type_,
        description=description,
        quantity=quantity,
        unit_price=unit_price,
        total=total,
        appointment_id=appointment_id,
    )


def credit_items(credits: Iterable[Any], unit_value: Decimal) -> list[InvoiceItemEntity]:
    value = BrazilianFormatter.to_money(unit_value)
    return [
        _new_item(InvoiceItemType.CREDITO.value, f"Crédito: {c.reason}", -1, value, -value)
        for c in credits
    ]


def build_invoice_items(
    classified: ClassifiedAppointments,
    session_fee: Decimal,
    credits: Sequence[Any] = (),
    show_appointment_days: bool = False,
    billing_mode: str = BillingMode.PER_SESSION.value,
    reference_month: int | None = None,
    reference_year: int | None = None,
    tz: str | tzinfo = "America/Sao_Paulo",
) -> list[InvoiceItemEntity]:
    fee = BrazilianFormatter.to_money(session_fee)

    if billing_mode == BillingMode.MONTHLY_FIXED.value:
        return _build_monthly_fixed(classified, fee, credits, show_appointment_days, reference_month, reference_year, tz)

    items: list[InvoiceItemEntity] = []
    for bucket, item_type in _BUCKETS:
        for apt in getattr(classified, bucket):
            description = ITEM_DESCRIPTIONS[item_type]
            if show_appointment_days:
                description += f" - {BrazilianFormatter.format_day_month(_local(apt.scheduled_at, tz))}"
            price = BrazilianFormatter.to_money(apt.price) if apt.price is not None else fee
            items.append(_new_item(item_type, description, 1, price, price, apt.id))

    items.extend(credit_items(credits, fee))
    return items


def _build_monthly_fixed(
    classified: ClassifiedAppointments,
    monthly_fee: Decimal,
    credits: Sequence[Any],
    show_appointment_days: bool,
    reference_month: int | None,
    reference_year: int | None,
    tz: str | tzinfo,
) -> list[InvoiceItemEntity]:
    """
    Uma linha consolidada com a mensalidade, vinculada ao primeiro agendamento
    do mês, seguida dos créditos pelo valor proporcional de uma sessão.
    Sem sessões no mês não há mensalidade nem créditos.
    """
    sessions = sorted(classified.all(), key=lambda a: a.scheduled_at)
    if not sessions:
        return []

    description = "Mensalidade"
    if reference_month and reference_year:
        description += f" - {BrazilianFormatter.month_name(reference_month)}/{reference_year}"
    if show_appointment_days:
        days = ", ".join(BrazilianFormatter.format_day_month(_local(a.scheduled_at, tz)) for a in sessions)
        description += f" ({days})"
    items = [_new_item(
        InvoiceItemType.SESSAO_REGULAR.value, description, len(sessions),
        monthly_fee, monthly_fee, sessions[0].id,
    )]
    credit_value = (monthly_fee / len(sessions)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    items.extend(credit_items(credits, credit_value))
    return items


def applicable_credits(
    classified: ClassifiedAppointments,
    credits: Sequence[Any],
    billing_mode: str = BillingMode.PER_SESSION.value,
) -> list[Any]:
    """Créditos que a fatura do mês consome. MONTHLY_FIXED sem sessões guarda todos para o próximo mês."""
    if billing_mode == BillingMode.MONTHLY_FIXED.value and not classified.all():
        return []
    return list(credits)


def calculate_invoice_totals(items: Iterable[Any]) -> InvoiceTotals:
    total_sessions = 0
    credits_applied = 0
    extras_added = 0
    total_amount = Decimal("0")
    for item in items:
        total_amount += Decimal(item.total)
        if item.type == InvoiceItemType.CREDITO.value:
            credits_applied += abs(item.quantity)
            continue
        total_sessions += item.quantity
        if item.type in EXTRA_ITEM_TYPES:
            extras_added += item.quantity
    return InvoiceTotals(
        total_sessions=total_sessions,
        credits_applied=credits_applied,
        extras_added=extras_added,
        total_amount=BrazilianFormatter.to_money(total_amount),
    )


def count_items_by_type(items: Iterable[Any]) -> dict[str, int]:
    counts = {t.value: 0 for t in InvoiceItemType}
    for item in items:
        counts[item.type] = counts.get(item.type, 0) + abs(item.quantity)
    return counts


def determine_invoice_professional(reference_professional_id: uuid.UUID | None, appointments: Iterable[Any]) -> uuid.UUID | None:
    """Profissional de referência do paciente ou, na falta, o com mais agendamentos."""
    if reference_professional_id:
        return reference_professional_id
    counts: dict[uuid.UUID, int] = {}
    for apt in appointments:
        counts[apt.professional_profile_id] = counts.get(apt.professional_profile_id, 0) + 1
    if not counts:
        return None
    return max(counts.items(), key=lambda kv: kv[1])[0]


def separate_manual_items(items: Iterable[Any], consumed_credits: Iterable[Any]) -> tuple[list[Any], list[Any]]:
    """
    Divide itens em (automáticos, manuais). Automático: tem appointment_id ou é
    CREDITO com a descrição de um crédito consumido pela fatura.
    """
    credit_descriptions = {f"Crédito: {c.reason}" for c in consumed_credits}
    auto, manual = [], []
    for item in items:
        if item.appointment_id is not None or (
            item.type == InvoiceItemType.CREDITO.value and item.description in credit_descriptions
        ):
            auto.append(item)
        else:
            manual.append(item)
    return auto, manual
