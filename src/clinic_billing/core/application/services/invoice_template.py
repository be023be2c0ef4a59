from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Mapping
from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

from clinic_billing.core.application.services.invoice_builder import InvoiceTotals, count_items_by_type
from clinic_billing.core.application.services.utils.formatters import BrazilianFormatter
from clinic_billing.core.domain.entities.enums import InvoiceItemType
from clinic_billing.core.utils.template_utils import render_message

DEFAULT_INVOICE_TEMPLATE = """Prezado(a) {{mae}},

Segue a fatura de {{paciente}} referente ao mês de {{mes}}/{{ano}}.

Valor: {{valor}}
Vencimento: {{vencimento}}
Total de sessões: {{sessoes}}

Atenciosamente,
{{profissional}}"""

TEMPLATE_VARIABLES: frozenset[str] = frozenset({
    "paciente", "mae", "pai", "valor", "mes", "ano", "vencimento", "sessoes",
    "profissional", "sessoes_regulares", "sessoes_extras", "sessoes_grupo",
    "reunioes_escola", "creditos", "valor_sessao", "detalhes",
})

_DAY_MONTH_RE = re.compile(r"\d{2}/\d{2}")


def resolve_template(patient_template: str | None, clinic_template: str | None) -> str:
    """Paciente → clínica → padrão."""
    return patient_template or clinic_template or DEFAULT_INVOICE_TEMPLATE


def render_invoice_template(template: str, variables: Mapping[str, Any]) -> str:
    return render_message(template, variables, known_keys=TEMPLATE_VARIABLES)


def build_detail_block(
    items: Iterable[Any],
    appointment_dates: Mapping[uuid.UUID, datetime] | None = None,
    tz: str | tzinfo = "America/Sao_Paulo",
) -> str:
    """Lista os itens (descrição + valor), acrescentando a data quando a descrição não a tem."""
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    dates = appointment_dates or {}
    lines = []
    for item in items:
        description = item.description
        when = dates.get(item.appointment_id) if item.appointment_id else None
        if when is not None and not _DAY_MONTH_RE.search(description):
            description += f" ({BrazilianFormatter.format_day_month(when.astimezone(zone))})"
        quantity = abs(item.quantity)
        prefix = f"{quantity}x " if quantity > 1 and item.type != InvoiceItemType.SESSAO_REGULAR.value else ""
        lines.append(f"- {prefix}{description}: {BrazilianFormatter.format_currency(item.total)}")
    return "\n".join(lines)


def build_template_variables(
    *,
    patient: Any,
    professional_name: str | None,
    reference_month: int,
    reference_year: int,
    due_date: date,
    totals: InvoiceTotals,
    items: Iterable[Any],
    session_fee: Decimal | None,
    detail_block: str | None = None,
) -> dict[str, str | None]:
    items = list(items)
    counts = count_items_by_type(items)
    return {
        "paciente": patient.name,
        "mae": patient.mother_name,
        "pai": patient.father_name,
        "valor": BrazilianFormatter.format_currency(totals.total_amount),
        "mes": BrazilianFormatter.month_name(reference_month),
        "ano": str(reference_year),
        "vencimento": BrazilianFormatter.format_date(due_date),
        "sessoes": str(totals.total_sessions),
        "profissional": professional_name,
        "sessoes_regulares": str(counts[InvoiceItemType.SESSAO_REGULAR.value]),
        "sessoes_extras": str(counts[InvoiceItemType.SESSAO_EXTRA.value]),
        "sessoes_grupo": str(counts[InvoiceItemType.SESSAO_GRUPO.value]),
        "reunioes_escola": str(counts[InvoiceItemType.REUNIAO_ESCOLA.value]),
        "creditos": str(totals.credits_applied),
        "valor_sessao": BrazilianFormatter.format_currency(session_fee) if session_fee is not None else None,
        "detalhes": detail_block,
    }
