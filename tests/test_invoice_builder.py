"""Classificação de agendamentos, montagem de itens e totais da fatura."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from django.test import SimpleTestCase

from clinic_billing.core.application.services.appointment_classifier import (
    classify_appointments,
    filter_billable,
)
from clinic_billing.core.application.services.invoice_builder import (
    applicable_credits,
    build_invoice_items,
    calculate_invoice_totals,
    count_items_by_type,
    determine_invoice_professional,
    separate_manual_items,
)
from clinic_billing.core.domain.entities.appointment_entity import AppointmentEntity
from clinic_billing.core.domain.entities.invoice_entity import InvoiceItemEntity

TZ = ZoneInfo("America/Sao_Paulo")
CLINIC = uuid.uuid4()
PROF_A = uuid.uuid4()
PROF_B = uuid.uuid4()
RECURRENCE = uuid.uuid4()


@dataclass
class FakeCredit:
    reason: str


def apt(day: int, *, status="AGENDADO", type_="CONSULTA", recurrence=RECURRENCE, group=None,
        price=None, professional=PROF_A, hour=9) -> AppointmentEntity:
    start = datetime(2024, 1, day, hour, 0, tzinfo=TZ)
    return AppointmentEntity(
        id=uuid.uuid4(),
        clinic_id=CLINIC,
        professional_profile_id=professional,
        patient_id=uuid.uuid4(),
        scheduled_at=start,
        end_at=start + timedelta(minutes=50),
        status=status,
        type=type_,
        recurrence_id=recurrence,
        group_id=group,
        price=price,
    )


class ClassifierTests(SimpleTestCase):
    def test_only_billable_statuses(self):
        apts = [
            apt(1, status="AGENDADO"),
            apt(2, status="CONFIRMADO"),
            apt(3, status="FINALIZADO"),
            apt(4, status="CANCELADO_ACORDADO"),
            apt(5, status="CANCELADO_FALTA"),
            apt(6, status="CANCELADO_PROFISSIONAL"),
        ]
        self.assertEqual(len(filter_billable(apts)), 3)

    def test_first_matching_rule_wins(self):
        group_meeting = apt(2, type_="REUNIAO", group=uuid.uuid4())
        meeting = apt(3, type_="REUNIAO")
        regular = apt(4)
        extra = apt(5, recurrence=None)
        result = classify_appointments([extra, regular, meeting, group_meeting])

        self.assertEqual(result.group, [group_meeting])
        self.assertEqual(result.school_meeting, [meeting])
        self.assertEqual(result.regular, [regular])
        self.assertEqual(result.extra, [extra])
        self.assertEqual(result.total, 4)

    def test_buckets_sorted_by_date(self):
        late, early = apt(20), apt(6)
        self.assertEqual(classify_appointments([late, early]).regular, [early, late])


class BuildItemsTests(SimpleTestCase):
    def test_four_sessions_one_credit(self):
        classified = classify_appointments([apt(1), apt(8), apt(15), apt(22)])
        items = build_invoice_items(classified, Decimal("150"), [FakeCredit("Desmarcou - 29/01/2024")])
        totals = calculate_invoice_totals(items)

        self.assertEqual(totals.total_sessions, 4)
        self.assertEqual(totals.credits_applied, 1)
        self.assertEqual(totals.extras_added, 0)
        self.assertEqual(totals.total_amount, Decimal("450.00"))

        credit = items[-1]
        self.assertEqual(credit.type, "CREDITO")
        self.assertEqual(credit.quantity, -1)
        self.assertEqual(credit.total, Decimal("-150.00"))
        self.assertEqual(credit.description, "Crédito: Desmarcou - 29/01/2024")
        self.assertIsNone(credit.appointment_id)

    def test_item_order_and_links(self):
        regular = apt(8)
        extra = apt(3, recurrence=None)
        group = apt(4, group=uuid.uuid4())
        meeting = apt(5, type_="REUNIAO")
        items = build_invoice_items(
            classify_appointments([meeting, group, extra, regular]), Decimal("100"), [FakeCredit("x")],
        )
        self.assertEqual(
            [i.type for i in items],
            ["SESSAO_REGULAR", "SESSAO_EXTRA", "SESSAO_GRUPO", "REUNIAO_ESCOLA", "CREDITO"],
        )
        self.assertEqual(items[0].appointment_id, regular.id)
        totals = calculate_invoice_totals(items)
        self.assertEqual(totals.extras_added, 2)
        self.assertEqual(totals.total_sessions, 4)

    def test_appointment_price_overrides_fee(self):
        items = build_invoice_items(classify_appointments([apt(8, price=Decimal("180"))]), Decimal("150"))
        self.assertEqual(items[0].unit_price, Decimal("180.00"))
        self.assertEqual(calculate_invoice_totals(items).total_amount, Decimal("180.00"))

    def test_descriptions_with_days(self):
        items = build_invoice_items(
            classify_appointments([apt(8), apt(9, recurrence=None)]), Decimal("150"), show_appointment_days=True,
        )
        self.assertEqual(items[0].description, "Sessão - 08/01")
        self.assertEqual(items[1].description, "Sessão extra - 09/01")

    def test_day_uses_clinic_timezone(self):
        # 22h em São Paulo já é dia seguinte em UTC
        items = build_invoice_items(
            classify_appointments([apt(8, hour=22)]), Decimal("150"), show_appointment_days=True,
        )
        self.assertEqual(items[0].description, "Sessão - 08/01")

    def test_no_appointments_only_credits(self):
        items = build_invoice_items(classify_appointments([]), Decimal("150"), [FakeCredit("a"), FakeCredit("b")])
        totals = calculate_invoice_totals(items)
        self.assertEqual(totals.total_sessions, 0)
        self.assertEqual(totals.credits_applied, 2)
        self.assertEqual(totals.total_amount, Decimal("-300.00"))


class MonthlyFixedTests(SimpleTestCase):
    def test_single_consolidated_line(self):
        sessions = [apt(1), apt(8), apt(15), apt(22)]
        items = build_invoice_items(
            classify_appointments(sessions), Decimal("600"), [FakeCredit("Desmarcou - 29/01/2024")],
            billing_mode="MONTHLY_FIXED", reference_month=1, reference_year=2024,
        )
        self.assertEqual(len(items), 2)
        monthly = items[0]
        self.assertEqual(monthly.description, "Mensalidade - Janeiro/2024")
        self.assertEqual(monthly.quantity, 4)
        self.assertEqual(monthly.total, Decimal("600.00"))
        self.assertEqual(monthly.appointment_id, sessions[0].id)
        # crédito vale uma sessão proporcional
        self.assertEqual(items[1].total, Decimal("-150.00"))

        totals = calculate_invoice_totals(items)
        self.assertEqual(totals.total_sessions, 4)
        self.assertEqual(totals.total_amount, Decimal("450.00"))

    def test_days_listed(self):
        items = build_invoice_items(
            classify_appointments([apt(8), apt(15)]), Decimal("400"), billing_mode="MONTHLY_FIXED",
            show_appointment_days=True, reference_month=1, reference_year=2024,
        )
        self.assertEqual(items[0].description, "Mensalidade - Janeiro/2024 (08/01, 15/01)")

    def test_rounding_of_credit_share(self):
        items = build_invoice_items(
            classify_appointments([apt(1), apt(8), apt(15)]), Decimal("500"), [FakeCredit("c")],
            billing_mode="MONTHLY_FIXED",
        )
        self.assertEqual(items[-1].unit_price, Decimal("166.67"))

    def test_month_without_sessions_keeps_credits(self):
        classified = classify_appointments([apt(29, status="CANCELADO_ACORDADO")])
        credits = [FakeCredit("Desmarcou - 29/01/2024")]

        items = build_invoice_items(classified, Decimal("600"), credits, billing_mode="MONTHLY_FIXED")

        self.assertEqual(items, [])
        self.assertEqual(calculate_invoice_totals(items).total_amount, Decimal("0.00"))
        self.assertEqual(applicable_credits(classified, credits, "MONTHLY_FIXED"), [])

    def test_credits_apply_when_month_has_sessions(self):
        credits = [FakeCredit("c")]
        self.assertEqual(applicable_credits(classify_appointments([apt(8)]), credits, "MONTHLY_FIXED"), credits)
        self.assertEqual(applicable_credits(classify_appointments([]), credits, "PER_SESSION"), credits)


class HelperTests(SimpleTestCase):
    def _item(self, type_, quantity=1, total="100", appointment_id=None, description="x"):
        return InvoiceItemEntity(
            id=uuid.uuid4(), invoice_id=None, type=type_, description=description, quantity=quantity,
            unit_price=Decimal("100"), total=Decimal(total), appointment_id=appointment_id,
        )

    def test_count_items_by_type(self):
        counts = count_items_by_type([
            self._item("SESSAO_REGULAR"),
            self._item("SESSAO_EXTRA", quantity=2, total="200"),
            self._item("CREDITO", quantity=-1, total="-100"),
        ])
        self.assertEqual(counts["SESSAO_REGULAR"], 1)
        self.assertEqual(counts["SESSAO_EXTRA"], 2)
        self.assertEqual(counts["CREDITO"], 1)
        self.assertEqual(counts["SESSAO_GRUPO"], 0)

    def test_determine_professional(self):
        ref = uuid.uuid4()
        apts = [apt(1, professional=PROF_B), apt(2, professional=PROF_A), apt(3, professional=PROF_B)]
        self.assertEqual(determine_invoice_professional(ref, apts), ref)
        self.assertEqual(determine_invoice_professional(None, apts), PROF_B)
        self.assertIsNone(determine_invoice_professional(None, []))

    def test_separate_manual_items(self):
        linked = self._item("SESSAO_REGULAR", appointment_id=uuid.uuid4())
        auto_credit = self._item("CREDITO", quantity=-1, total="-100", description="Crédito: Desmarcou - 29/01/2024")
        manual_credit = self._item("CREDITO", quantity=-1, total="-50", description="Desconto combinado")
        manual_extra = self._item("SESSAO_EXTRA", description="Sessão extra sábado")

        auto, manual = separate_manual_items(
            [linked, auto_credit, manual_credit, manual_extra], [FakeCredit("Desmarcou - 29/01/2024")],
        )
        self.assertEqual(auto, [linked, auto_credit])
        self.assertEqual(manual, [manual_credit, manual_extra])
