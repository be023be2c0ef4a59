"""Regras puras: transições de status, repasse e ordenação de faturas."""

import uuid
from datetime import UTC, datetime, time
from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase

from clinic_billing.core.application.services.invoice_sort import (
    earliest_recurrence_by_patient,
    sort_invoices_by_recurrence,
    weekday_rank,
)
from clinic_billing.core.application.services.repasse import (
    build_repasse_lines,
    calculate_repasse,
    summarize_repasse,
)
from clinic_billing.core.application.services.status_transitions import (
    allowed_transitions,
    apply_status_change,
    is_valid_transition,
    should_update_last_visit,
)


class StatusTransitionTests(SimpleTestCase):
    def test_table(self):
        self.assertTrue(is_valid_transition("AGENDADO", "CONFIRMADO"))
        self.assertTrue(is_valid_transition("AGENDADO", "CANCELADO_ACORDADO"))
        self.assertTrue(is_valid_transition("CONFIRMADO", "FINALIZADO"))
        self.assertTrue(is_valid_transition("CANCELADO_ACORDADO", "CANCELADO_FALTA"))
        self.assertTrue(is_valid_transition("CANCELADO_FALTA", "AGENDADO"))
        self.assertFalse(is_valid_transition("CONFIRMADO", "AGENDADO"))
        self.assertFalse(is_valid_transition("CANCELADO_ACORDADO", "FINALIZADO"))
        self.assertFalse(is_valid_transition("INEXISTENTE", "AGENDADO"))

    def test_finalized_is_terminal(self):
        self.assertEqual(allowed_transitions("FINALIZADO"), [])

    def test_apply_status_change_stamps(self):
        now = datetime(2024, 1, 8, 12, 0, tzinfo=UTC)
        apt = SimpleNamespace(status="AGENDADO", confirmed_at=None, cancelled_at=None, cancellation_reason=None)

        apply_status_change(apt, "CONFIRMADO", now)
        self.assertEqual(apt.confirmed_at, now)

        apply_status_change(apt, "CANCELADO_ACORDADO", now, "viagem")
        self.assertEqual(apt.cancelled_at, now)
        self.assertEqual(apt.cancellation_reason, "viagem")

        apply_status_change(apt, "AGENDADO", now)
        self.assertIsNone(apt.confirmed_at)
        self.assertIsNone(apt.cancelled_at)
        self.assertIsNone(apt.cancellation_reason)

    def test_last_visit_only_on_finalized(self):
        self.assertTrue(should_update_last_visit("FINALIZADO"))
        self.assertFalse(should_update_last_visit("CONFIRMADO"))


class RepasseTests(SimpleTestCase):
    def test_calculation(self):
        calc = calculate_repasse(Decimal("1000"), Decimal("6"), Decimal("50"))
        self.assertEqual(calc.tax_amount, Decimal("60.00"))
        self.assertEqual(calc.after_tax, Decimal("940.00"))
        self.assertEqual(calc.repasse_value, Decimal("470.00"))

    def test_rounding(self):
        calc = calculate_repasse(Decimal("333.33"), Decimal("7.5"), Decimal("40"))
        self.assertEqual(calc.tax_amount, Decimal("25.00"))
        self.assertEqual(calc.after_tax, Decimal("308.33"))
        self.assertEqual(calc.repasse_value, Decimal("123.33"))

    def test_summary(self):
        p1, p2 = uuid.uuid4(), uuid.uuid4()
        invoices = [
            SimpleNamespace(id=uuid.uuid4(), patient_id=p1, total_sessions=4, total_amount=Decimal("450")),
            SimpleNamespace(id=uuid.uuid4(), patient_id=p2, total_sessions=2, total_amount=Decimal("300")),
        ]
        lines = build_repasse_lines(invoices, {p1: "Lucas", p2: "Bia"}, Decimal("10"), Decimal("50"))
        self.assertEqual(lines[0].patient_name, "Lucas")
        summary = summarize_repasse(lines)
        self.assertEqual(summary.total_invoices, 2)
        self.assertEqual(summary.total_sessions, 6)
        self.assertEqual(summary.total_gross, Decimal("750.00"))
        self.assertEqual(summary.total_tax, Decimal("75.00"))
        self.assertEqual(summary.total_after_tax, Decimal("675.00"))
        self.assertEqual(summary.total_repasse, Decimal("337.50"))

    def test_empty_summary(self):
        summary = summarize_repasse([])
        self.assertEqual(summary.total_invoices, 0)
        self.assertEqual(summary.total_repasse, Decimal("0.00"))


class InvoiceSortTests(SimpleTestCase):
    def test_weekday_rank_puts_sunday_last(self):
        self.assertEqual(weekday_rank(1), 0)
        self.assertEqual(weekday_rank(6), 5)
        self.assertEqual(weekday_rank(0), 6)

    def test_sort_by_earliest_weekly_slot(self):
        ana, bia, caio, davi, edu = (uuid.uuid4() for _ in range(5))
        names = {ana: "Ana", bia: "Bia", caio: "Caio", davi: "Davi", edu: "Edu"}
        recurrences = [
            SimpleNamespace(patient_id=ana, day_of_week=0, start_time=time(8, 0)),
            SimpleNamespace(patient_id=bia, day_of_week=1, start_time=time(10, 0)),
            SimpleNamespace(patient_id=bia, day_of_week=3, start_time=time(8, 0)),
            SimpleNamespace(patient_id=caio, day_of_week=1, start_time=time(8, 0)),
            SimpleNamespace(patient_id=None, day_of_week=1, start_time=time(7, 0)),
        ]
        invoices = [SimpleNamespace(patient_id=pid) for pid in (edu, ana, davi, bia, caio)]

        ordered = sort_invoices_by_recurrence(invoices, earliest_recurrence_by_patient(recurrences), names)
        self.assertEqual([names[i.patient_id] for i in ordered], ["Caio", "Bia", "Ana", "Davi", "Edu"])

    def test_earliest_recurrence_per_patient(self):
        pid = uuid.uuid4()
        monday = SimpleNamespace(patient_id=pid, day_of_week=1, start_time=time(18, 0))
        friday = SimpleNamespace(patient_id=pid, day_of_week=5, start_time=time(7, 0))
        self.assertIs(earliest_recurrence_by_patient([friday, monday])[pid], monday)
