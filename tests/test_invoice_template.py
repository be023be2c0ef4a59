import uuid
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace
from zoneinfo import ZoneInfo

from django.test import SimpleTestCase

from clinic_billing.core.application.services.invoice_builder import InvoiceTotals
from clinic_billing.core.application.services.invoice_template import (
    DEFAULT_INVOICE_TEMPLATE,
    build_detail_block,
    build_template_variables,
    render_invoice_template,
    resolve_template,
)
from clinic_billing.core.application.services.utils.formatters import BrazilianFormatter, billing_fee_label
from clinic_billing.core.domain.entities.invoice_entity import InvoiceItemEntity
from clinic_billing.core.utils.template_utils import render_message


def item(type_, description, quantity=1, total="150", appointment_id=None):
    return InvoiceItemEntity(
        id=uuid.uuid4(), invoice_id=None, type=type_, description=description, quantity=quantity,
        unit_price=abs(Decimal(total)), total=Decimal(total), appointment_id=appointment_id,
    )


class RenderMessageTests(SimpleTestCase):
    def test_unknown_placeholder_passes_through(self):
        self.assertEqual(render_message("Olá {{nome}}, {{x}}", {"nome": "Maria"}), "Olá Maria, {{x}}")

    def test_known_key_without_value_is_blank(self):
        out = render_invoice_template("Pai: {{pai}}; {{outro}}", {"pai": None})
        self.assertEqual(out, "Pai: ; {{outro}}")

    def test_repeated_placeholders(self):
        self.assertEqual(render_message("{{a}}-{{a}}", {"a": 1}), "1-1")


class ResolveTemplateTests(SimpleTestCase):
    def test_precedence(self):
        self.assertEqual(resolve_template("paciente", "clinica"), "paciente")
        self.assertEqual(resolve_template(None, "clinica"), "clinica")
        self.assertEqual(resolve_template("", None), DEFAULT_INVOICE_TEMPLATE)


class TemplateVariablesTests(SimpleTestCase):
    def test_default_template_rendering(self):
        items = [
            item("SESSAO_REGULAR", "Sessão"),
            item("SESSAO_REGULAR", "Sessão"),
            item("SESSAO_REGULAR", "Sessão"),
            item("SESSAO_REGULAR", "Sessão"),
            item("CREDITO", "Crédito: Desmarcou - 29/01/2024", quantity=-1, total="-150"),
        ]
        patient = SimpleNamespace(name="Lucas", mother_name="Ana", father_name=None)
        variables = build_template_variables(
            patient=patient,
            professional_name="Dra. Helena",
            reference_month=1,
            reference_year=2024,
            due_date=date(2024, 1, 15),
            totals=InvoiceTotals(4, 1, 0, Decimal("450.00")),
            items=items,
            session_fee=Decimal("150"),
        )
        self.assertEqual(variables["sessoes_regulares"], "4")
        self.assertEqual(variables["creditos"], "1")
        self.assertEqual(variables["valor_sessao"], "R$ 150,00")

        message = render_invoice_template(DEFAULT_INVOICE_TEMPLATE, variables)
        self.assertIn("Prezado(a) Ana,", message)
        self.assertIn("Segue a fatura de Lucas referente ao mês de Janeiro/2024.", message)
        self.assertIn("Valor: R$ 450,00", message)
        self.assertIn("Vencimento: 15/01/2024", message)
        self.assertIn("Total de sessões: 4", message)
        self.assertTrue(message.endswith("Dra. Helena"))

    def test_detail_block(self):
        apt_id = uuid.uuid4()
        when = datetime(2024, 1, 8, 9, 0, tzinfo=ZoneInfo("America/Sao_Paulo"))
        block = build_detail_block(
            [
                item("SESSAO_REGULAR", "Sessão", appointment_id=apt_id),
                item("SESSAO_EXTRA", "Sessão extra sábado", quantity=2, total="300"),
                item("CREDITO", "Crédito: Desmarcou - 29/01/2024", quantity=-1, total="-150"),
            ],
            {apt_id: when},
        )
        self.assertEqual(block.splitlines(), [
            "- Sessão (08/01): R$ 150,00",
            "- 2x Sessão extra sábado: R$ 300,00",
            "- Crédito: Desmarcou - 29/01/2024: -R$ 150,00",
        ])

    def test_detail_block_keeps_existing_day(self):
        apt_id = uuid.uuid4()
        when = datetime(2024, 1, 8, 9, 0, tzinfo=ZoneInfo("America/Sao_Paulo"))
        block = build_detail_block([item("SESSAO_REGULAR", "Sessão - 08/01", appointment_id=apt_id)], {apt_id: when})
        self.assertEqual(block, "- Sessão - 08/01: R$ 150,00")


class FormatterTests(SimpleTestCase):
    def test_currency(self):
        self.assertEqual(BrazilianFormatter.format_currency(Decimal("1234.5")), "R$ 1.234,50")
        self.assertEqual(BrazilianFormatter.format_currency(0), "R$ 0,00")
        self.assertEqual(BrazilianFormatter.format_currency(Decimal("-150")), "-R$ 150,00")
        self.assertEqual(BrazilianFormatter.format_currency(Decimal("1000000")), "R$ 1.000.000,00")

    def test_to_money_rounds_half_up(self):
        self.assertEqual(BrazilianFormatter.to_money("2.345"), Decimal("2.35"))
        self.assertEqual(BrazilianFormatter.to_money(None), Decimal("0.00"))

    def test_dates_and_names(self):
        self.assertEqual(BrazilianFormatter.format_date(date(2024, 3, 5)), "05/03/2024")
        self.assertEqual(BrazilianFormatter.format_date(None), "")
        self.assertEqual(BrazilianFormatter.month_name(3), "Março")
        self.assertEqual(BrazilianFormatter.week_day(0), "Domingo")

    def test_fee_label(self):
        self.assertEqual(billing_fee_label("MONTHLY_FIXED"), "Valor Mensal")
        self.assertEqual(billing_fee_label("PER_SESSION"), "Valor da Sessão")
