"""
Geração/regeneração idempotente de faturas e edição manual de itens.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from prometheus_client import REGISTRY

from clinic_billing.adapters.config.composition_root import container as billing_container
from clinic_billing.core.application.commands.invoice_commands import (
    AddInvoiceItemCommand,
    DeleteInvoiceCommand,
    DeleteInvoiceItemCommand,
    GenerateMonthlyInvoicesCommand,
    SendInvoiceCommand,
    UpdateInvoiceCommand,
    UpdateInvoiceItemCommand,
)
from clinic_billing.core.application.queries.invoice_queries import (
    GetInvoiceQuery,
    GetRepasseQuery,
    ListInvoicesQuery,
)
from clinic_billing.core.domain.events.exceptions import (
    BillingValidationError,
    InvoiceLockedError,
    InvoiceNotFoundError,
    InvoiceValidationError,
)
from plugins.django_interface.models import Invoice, InvoiceItem, SessionCredit
from tests.helpers.billing_factories import (
    local_dt,
    make_appointment,
    make_clinic,
    make_credit,
    make_patient,
    make_professional,
    make_recurrence,
)


class InvoiceGenerationTests(TestCase):
    def setUp(self):
        self.bus = billing_container.command_bus()
        self.clinic = make_clinic(tax_percentage=Decimal("10"))
        self.professional = make_professional(self.clinic)
        self.patient = make_patient(self.clinic)
        self.recurrence = make_recurrence(self.clinic, self.professional, self.patient)
        self.sessions = [
            make_appointment(self.clinic, self.professional, self.patient, local_dt(2024, 1, day),
                             recurrence=self.recurrence)
            for day in (1, 8, 15, 22)
        ]
        self.cancelled = make_appointment(
            self.clinic, self.professional, self.patient, local_dt(2024, 1, 29),
            recurrence=self.recurrence, status="CANCELADO_ACORDADO", credit_generated=True,
        )

    def _generate(self, month=1, year=2024, professional=None):
        return self.bus.dispatch(GenerateMonthlyInvoicesCommand(
            clinic_id=self.clinic.id, month=month, year=year,
            professional_profile_id=professional.id if professional else None,
        ))

    def _invoice(self) -> Invoice:
        return Invoice.objects.get(clinic=self.clinic, patient=self.patient, reference_month=1, reference_year=2024)

    # ─────────────────────────── geração ───────────────────────────
    def test_generates_one_invoice_per_patient(self):
        result = self._generate()

        self.assertEqual((result.generated, result.updated, result.skipped), (1, 0, 0))
        invoice = self._invoice()
        self.assertEqual(invoice.status, "PENDENTE")
        self.assertEqual(invoice.total_sessions, 4)
        self.assertEqual(invoice.total_amount, Decimal("600.00"))
        self.assertEqual(invoice.due_date, date(2024, 1, 15))
        self.assertEqual(invoice.professional_profile_id, self.professional.id)
        self.assertIn("Valor: R$ 600,00", invoice.message_body)
        self.assertIn("Janeiro/2024", invoice.message_body)
        self.assertEqual(invoice.items.count(), 4)

    def test_credit_is_applied_and_consumed(self):
        credit = make_credit(self.cancelled)
        self._generate()

        invoice = self._invoice()
        self.assertEqual(invoice.total_sessions, 4)
        self.assertEqual(invoice.credits_applied, 1)
        self.assertEqual(invoice.total_amount, Decimal("450.00"))
        credit.refresh_from_db()
        self.assertEqual(credit.consumed_by_invoice_id, invoice.id)
        self.assertIsNotNone(credit.consumed_at)

    def test_regeneration_is_idempotent(self):
        make_credit(self.cancelled)
        self._generate()
        first = self._invoice()

        result = self._generate()
        self.assertEqual((result.generated, result.updated), (0, 1))
        self.assertEqual(Invoice.objects.count(), 1)

        invoice = self._invoice()
        self.assertEqual(invoice.id, first.id)
        self.assertEqual(invoice.total_amount, Decimal("450.00"))
        self.assertEqual(invoice.items.count(), 5)
        self.assertEqual(invoice.items.filter(type="CREDITO").count(), 1)
        self.assertEqual(SessionCredit.objects.get().consumed_by_invoice_id, invoice.id)

    def test_regeneration_picks_up_schedule_changes(self):
        self._generate()
        make_appointment(self.clinic, self.professional, self.patient, local_dt(2024, 1, 10, 15))
        self._generate()

        invoice = self._invoice()
        self.assertEqual(invoice.total_sessions, 5)
        self.assertEqual(invoice.extras_added, 1)
        self.assertEqual(invoice.total_amount, Decimal("750.00"))

    def test_paid_invoice_is_never_touched(self):
        self._generate()
        Invoice.objects.filter(id=self._invoice().id).update(status="PAGO")
        make_appointment(self.clinic, self.professional, self.patient, local_dt(2024, 1, 10, 15))

        result = self._generate()
        self.assertEqual((result.generated, result.updated, result.skipped), (0, 0, 1))
        invoice = self._invoice()
        self.assertEqual(invoice.total_amount, Decimal("600.00"))
        self.assertEqual(invoice.items.count(), 4)

    def test_sent_invoice_is_skipped(self):
        self._generate()
        self.bus.dispatch(SendInvoiceCommand(invoice_id=self._invoice().id, clinic_id=self.clinic.id))
        self.assertEqual(self._invoice().status, "ENVIADO")
        self.assertIsNotNone(self._invoice().sent_at)
        self.assertEqual(self._generate().skipped, 1)

    def test_manual_items_survive_regeneration(self):
        self._generate()
        invoice = self._invoice()
        self.bus.dispatch(AddInvoiceItemCommand(
            invoice_id=invoice.id, clinic_id=self.clinic.id, type="REUNIAO_ESCOLA",
            description="Reunião com a escola", unit_price=Decimal("200"),
        ))
        self.assertEqual(self._invoice().total_amount, Decimal("800.00"))

        self._generate()
        invoice = self._invoice()
        self.assertEqual(invoice.total_amount, Decimal("800.00"))
        self.assertEqual(invoice.extras_added, 1)
        self.assertTrue(invoice.items.filter(description="Reunião com a escola").exists())
        self.assertEqual(invoice.items.count(), 5)

    def test_patient_without_fee_is_skipped(self):
        other = make_patient(self.clinic, name="Sem valor", session_fee=None)
        make_appointment(self.clinic, self.professional, other, local_dt(2024, 1, 9))

        result = self._generate()
        self.assertEqual((result.generated, result.skipped), (1, 1))
        self.assertFalse(Invoice.objects.filter(patient=other).exists())

    def test_other_month_and_other_types_are_ignored(self):
        make_appointment(self.clinic, self.professional, self.patient, local_dt(2024, 2, 5))
        make_appointment(self.clinic, self.professional, self.patient, local_dt(2024, 1, 11), type="LEMBRETE")
        self._generate()
        self.assertEqual(self._invoice().total_sessions, 4)

    def test_professional_filter_selects_patients(self):
        other_prof = make_professional(self.clinic, name="Dr. Paulo")
        other_patient = make_patient(self.clinic, name="Bia")
        make_appointment(self.clinic, other_prof, other_patient, local_dt(2024, 1, 9))

        result = self._generate(professional=other_prof)
        self.assertEqual(result.generated, 1)
        self.assertEqual(Invoice.objects.get().patient_id, other_patient.id)
        self.assertEqual(Invoice.objects.get().professional_profile_id, other_prof.id)

    def test_empty_period(self):
        result = self._generate(month=6)
        self.assertEqual((result.generated, result.updated, result.skipped), (0, 0, 0))

    def test_invalid_period_messages(self):
        with self.assertRaisesMessage(InvoiceValidationError, "Mês deve estar entre 1 e 12"):
            self._generate(month=13)
        with self.assertRaisesMessage(InvoiceValidationError, "Ano deve estar entre 2020 e 2100"):
            self._generate(year=2019)
        self.assertFalse(Invoice.objects.exists())

    def test_monthly_fixed_patient(self):
        self.patient.billing_mode = "MONTHLY_FIXED"
        self.patient.session_fee = Decimal("520")
        self.patient.save()
        make_credit(self.cancelled)

        self._generate()
        invoice = self._invoice()
        self.assertEqual(invoice.total_sessions, 4)
        self.assertEqual(invoice.total_amount, Decimal("390.00"))
        self.assertEqual(invoice.items.get(type="SESSAO_REGULAR").description, "Mensalidade - Janeiro/2024")

    def test_monthly_fixed_without_sessions_keeps_credit(self):
        other = make_patient(self.clinic, name="Bia", billing_mode="MONTHLY_FIXED", session_fee=Decimal("600"))
        cancelled = make_appointment(
            self.clinic, self.professional, other, local_dt(2024, 1, 10),
            status="CANCELADO_ACORDADO", credit_generated=True,
        )
        credit = make_credit(cancelled)

        self._generate()

        invoice = Invoice.objects.get(patient=other)
        self.assertEqual(invoice.total_amount, Decimal("0.00"))
        self.assertEqual(invoice.credits_applied, 0)
        self.assertFalse(invoice.items.exists())
        credit.refresh_from_db()
        self.assertIsNone(credit.consumed_by_invoice_id)

    def test_failure_on_second_patient_rolls_back_whole_period(self):
        credit = make_credit(self.cancelled)
        other = make_patient(self.clinic, name="Bia")
        make_appointment(self.clinic, self.professional, other, local_dt(2024, 1, 30))

        recalculator = billing_container.invoice_recalculator()
        real_recalculate = recalculator.recalculate
        processed = []

        def fail_on_second(invoice, **kwargs):
            processed.append(invoice.patient_id)
            if len(processed) == 2:
                raise RuntimeError("falha ao salvar fatura")
            return real_recalculate(invoice, **kwargs)

        failures_before = REGISTRY.get_sample_value("invoice_regeneration_total", {"success": "false"}) or 0
        with patch.object(recalculator, "recalculate", side_effect=fail_on_second):
            with self.assertRaises(RuntimeError):
                self._generate()

        self.assertEqual(processed, [self.patient.id, other.id])
        self.assertFalse(Invoice.objects.exists())
        self.assertFalse(InvoiceItem.objects.exists())
        credit.refresh_from_db()
        self.assertIsNone(credit.consumed_by_invoice_id)
        self.assertIsNone(credit.consumed_at)
        self.assertEqual(
            REGISTRY.get_sample_value("invoice_regeneration_total", {"success": "false"}),
            failures_before + 1,
        )

    def test_patient_template_wins(self):
        self.clinic.invoice_message_template = "Clínica: {{valor}}"
        self.clinic.save()
        self.patient.invoice_message_template = "Olá {{mae}}, total {{valor}} ({{sessoes}} sessões) {{desconhecida}}"
        self.patient.save()

        self._generate()
        self.assertEqual(self._invoice().message_body, "Olá Ana, total R$ 600,00 (4 sessões) {{desconhecida}}")


class InvoiceEditingTests(TestCase):
    def setUp(self):
        self.bus = billing_container.command_bus()
        self.query_bus = billing_container.query_bus()
        self.clinic = make_clinic(tax_percentage=Decimal("10"))
        self.professional = make_professional(self.clinic, repasse_percentage=Decimal("50"))
        self.patient = make_patient(self.clinic)
        for day in (2, 9, 16):
            make_appointment(self.clinic, self.professional, self.patient, local_dt(2024, 1, day))
        cancelled = make_appointment(
            self.clinic, self.professional, self.patient, local_dt(2024, 1, 23), status="CANCELADO_ACORDADO",
        )
        self.credit = make_credit(cancelled)
        self.bus.dispatch(GenerateMonthlyInvoicesCommand(clinic_id=self.clinic.id, month=1, year=2024))
        self.invoice = Invoice.objects.get()

    def _add(self, **kw):
        data = {"type": "SESSAO_EXTRA", "description": "Sessão extra sábado", "unit_price": Decimal("100")}
        data.update(kw)
        return self.bus.dispatch(AddInvoiceItemCommand(invoice_id=self.invoice.id, clinic_id=self.clinic.id, **data))

    def test_generated_totals(self):
        self.assertEqual(self.invoice.total_amount, Decimal("300.00"))

    def test_add_update_delete_item_recalculates(self):
        detail = self._add(quantity=2)
        self.assertEqual(detail.invoice.total_amount, Decimal("500.00"))
        self.assertEqual(detail.invoice.extras_added, 5)
        item = next(i for i in detail.items if i.description == "Sessão extra sábado")

        detail = self.bus.dispatch(UpdateInvoiceItemCommand(
            invoice_id=self.invoice.id, item_id=item.id, clinic_id=self.clinic.id, quantity=1,
            unit_price=Decimal("120"),
        ))
        self.assertEqual(detail.invoice.total_amount, Decimal("420.00"))
        self.assertEqual(InvoiceItem.objects.get(id=item.id).total, Decimal("120.00"))

        detail = self.bus.dispatch(DeleteInvoiceItemCommand(
            invoice_id=self.invoice.id, item_id=item.id, clinic_id=self.clinic.id,
        ))
        self.assertEqual(detail.invoice.total_amount, Decimal("300.00"))
        self.assertEqual(Invoice.objects.get().total_amount, Decimal("300.00"))

    def test_manual_credit_is_negative(self):
        detail = self._add(type="CREDITO", description="Desconto combinado", unit_price=Decimal("50"))
        credit_item = next(i for i in detail.items if i.description == "Desconto combinado")
        self.assertEqual(credit_item.quantity, -1)
        self.assertEqual(credit_item.total, Decimal("-50.00"))
        self.assertEqual(detail.invoice.total_amount, Decimal("250.00"))
        self.assertEqual(detail.invoice.credits_applied, 2)

    def test_invalid_manual_item(self):
        with self.assertRaises(BillingValidationError):
            self._add(type="SESSAO_REGULAR")
        with self.assertRaises(BillingValidationError):
            self._add(description="")

    def test_paid_invoice_items_are_locked(self):
        self.bus.dispatch(UpdateInvoiceCommand(invoice_id=self.invoice.id, clinic_id=self.clinic.id, status="PAGO"))
        self.assertIsNotNone(Invoice.objects.get().paid_at)
        with self.assertRaises(InvoiceLockedError):
            self._add()

    def test_delete_invoice_releases_credits(self):
        self.credit.refresh_from_db()
        self.assertEqual(self.credit.consumed_by_invoice_id, self.invoice.id)

        self.bus.dispatch(DeleteInvoiceCommand(invoice_id=self.invoice.id, clinic_id=self.clinic.id))

        self.assertFalse(Invoice.objects.exists())
        self.credit.refresh_from_db()
        self.assertIsNone(self.credit.consumed_by_invoice_id)
        self.assertIsNone(self.credit.consumed_at)

    def test_other_clinic_cannot_delete(self):
        with self.assertRaises(InvoiceNotFoundError):
            self.bus.dispatch(DeleteInvoiceCommand(invoice_id=self.invoice.id, clinic_id=make_clinic().id))

    def test_get_and_list_queries(self):
        detail = self.query_bus.dispatch(GetInvoiceQuery(invoice_id=self.invoice.id, clinic_id=self.clinic.id))
        self.assertEqual(detail.patient_name, "Lucas")
        self.assertEqual(detail.professional_name, "Dra. Helena")
        self.assertEqual(len(detail.items), 4)

        listed = self.query_bus.dispatch(ListInvoicesQuery(filtros={"clinic_id": self.clinic.id, "month": 1}))
        self.assertEqual([d.invoice.id for d in listed], [self.invoice.id])
        self.assertEqual(self.query_bus.dispatch(ListInvoicesQuery(filtros={"clinic_id": self.clinic.id,
                                                                            "month": 2})), [])

    def test_repasse_report(self):
        report = self.query_bus.dispatch(GetRepasseQuery(
            clinic_id=self.clinic.id, professional_profile_id=self.professional.id, month=1, year=2024,
        ))
        self.assertEqual(report.summary.total_invoices, 1)
        self.assertEqual(report.summary.total_gross, Decimal("300.00"))
        self.assertEqual(report.summary.total_tax, Decimal("30.00"))
        self.assertEqual(report.summary.total_repasse, Decimal("135.00"))

    def test_repasse_ignores_cancelled_invoices(self):
        self.bus.dispatch(UpdateInvoiceCommand(invoice_id=self.invoice.id, clinic_id=self.clinic.id,
                                               status="CANCELADO"))
        report = self.query_bus.dispatch(GetRepasseQuery(
            clinic_id=self.clinic.id, professional_profile_id=self.professional.id, month=1, year=2024,
        ))
        self.assertEqual(report.lines, [])
