"""
Handlers de recorrência: criação, exceções, finalização, edição e extensão.

As datas ficam em 2030 para que os agendamentos gerados sejam futuros.
"""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal

from django.test import TestCase

from clinic_billing.adapters.config.composition_root import container as billing_container
from clinic_billing.core.application.commands.appointment_commands import (
    CreateRecurrenceCommand,
    ExtendRecurrencesCommand,
    FinalizeRecurrenceCommand,
    SkipRecurrenceDateCommand,
    UnskipRecurrenceDateCommand,
    UpdateRecurrenceCommand,
)
from clinic_billing.core.application.commands.invoice_commands import GenerateMonthlyInvoicesCommand
from clinic_billing.core.domain.events.exceptions import RecurrenceNotFoundError, RecurrenceValidationError
from plugins.django_interface.models import Appointment, AppointmentRecurrence, Invoice, InvoiceItem
from tests.helpers.billing_factories import (
    TZ,
    local_dt,
    make_appointment,
    make_clinic,
    make_patient,
    make_professional,
    make_recurrence,
)

MONDAY = date(2030, 1, 7)


def local_dates(qs):
    return [a.scheduled_at.astimezone(TZ).date() for a in qs.order_by("scheduled_at")]


class RecurrenceHandlerTests(TestCase):
    def setUp(self):
        self.bus = billing_container.command_bus()
        self.clinic = make_clinic()
        self.professional = make_professional(self.clinic)
        self.patient = make_patient(self.clinic)

    def _create(self, **kw):
        data = dict(
            clinic_id=self.clinic.id,
            professional_profile_id=self.professional.id,
            patient_id=self.patient.id,
            recurrence_type="WEEKLY",
            recurrence_end_type="BY_OCCURRENCES",
            day_of_week=1,
            start_time=time(9, 0),
            duration_minutes=50,
            start_date=MONDAY,
            occurrences=4,
        )
        data.update(kw)
        return self.bus.dispatch(CreateRecurrenceCommand(**data))

    # ─────────────────────── criação ───────────────────────
    def test_create_generates_occurrences(self):
        result = self._create()

        self.assertEqual(len(result.created), 4)
        self.assertEqual(result.skipped_dates, [])
        self.assertEqual(result.recurrence.last_generated_date, date(2030, 1, 28))
        self.assertEqual(
            local_dates(Appointment.objects.filter(recurrence_id=result.recurrence.id)),
            [date(2030, 1, 7), date(2030, 1, 14), date(2030, 1, 21), date(2030, 1, 28)],
        )
        first = Appointment.objects.filter(recurrence_id=result.recurrence.id).order_by("scheduled_at").first()
        self.assertEqual(first.scheduled_at.astimezone(TZ).time(), time(9, 0))
        self.assertEqual(first.status, "AGENDADO")
        self.assertEqual(first.patient_id, self.patient.id)

    def test_create_skips_taken_slot(self):
        make_appointment(self.clinic, self.professional, None, local_dt(2030, 1, 14), type="TAREFA")

        result = self._create()

        self.assertEqual(len(result.created), 3)
        self.assertEqual(result.skipped_dates, [date(2030, 1, 14)])

    def test_create_rejects_invalid_type(self):
        with self.assertRaises(RecurrenceValidationError):
            self._create(recurrence_type="DAILY")

    def test_create_by_date_requires_end_after_start(self):
        with self.assertRaisesMessage(RecurrenceValidationError, "Data final deve ser posterior à data inicial"):
            self._create(recurrence_end_type="BY_DATE", occurrences=None, end_date=date(2029, 12, 1))

    # ─────────────────────── exceções ───────────────────────
    def test_skip_and_unskip_date(self):
        rid = self._create().recurrence.id

        skipped = self.bus.dispatch(SkipRecurrenceDateCommand(
            recurrence_id=rid, clinic_id=self.clinic.id, date=date(2030, 1, 14),
        ))
        self.assertEqual(skipped.removed, 1)
        self.assertEqual(AppointmentRecurrence.objects.get(id=rid).exceptions, ["2030-01-14"])
        self.assertNotIn(date(2030, 1, 14), local_dates(Appointment.objects.filter(recurrence_id=rid)))

        with self.assertRaisesMessage(RecurrenceValidationError, "Data já está nas exceções da recorrência"):
            self.bus.dispatch(SkipRecurrenceDateCommand(
                recurrence_id=rid, clinic_id=self.clinic.id, date=date(2030, 1, 14),
            ))

        restored = self.bus.dispatch(UnskipRecurrenceDateCommand(
            recurrence_id=rid, clinic_id=self.clinic.id, date=date(2030, 1, 14),
        ))
        self.assertEqual(len(restored.created), 1)
        self.assertEqual(AppointmentRecurrence.objects.get(id=rid).exceptions, [])
        self.assertEqual(Appointment.objects.filter(recurrence_id=rid).count(), 4)

    def test_unskip_date_not_in_exceptions(self):
        rid = self._create().recurrence.id
        with self.assertRaisesMessage(RecurrenceValidationError, "Data não está nas exceções da recorrência"):
            self.bus.dispatch(UnskipRecurrenceDateCommand(
                recurrence_id=rid, clinic_id=self.clinic.id, date=date(2030, 1, 14),
            ))

    def test_other_clinic_cannot_touch_recurrence(self):
        rid = self._create().recurrence.id
        with self.assertRaises(RecurrenceNotFoundError):
            self.bus.dispatch(SkipRecurrenceDateCommand(
                recurrence_id=rid, clinic_id=make_clinic().id, date=date(2030, 1, 14),
            ))

    # ─────────────────────── finalização ───────────────────────
    def test_finalize_cancels_future_appointments(self):
        rid = self._create().recurrence.id

        result = self.bus.dispatch(FinalizeRecurrenceCommand(
            recurrence_id=rid, clinic_id=self.clinic.id, end_date=date(2030, 1, 15),
            cancel_future_appointments=True,
        ))

        self.assertEqual(result.cancelled, 2)
        recurrence = AppointmentRecurrence.objects.get(id=rid)
        self.assertEqual(recurrence.recurrence_end_type, "BY_DATE")
        self.assertEqual(recurrence.end_date, date(2030, 1, 15))
        self.assertIsNone(recurrence.occurrences)
        cancelled = Appointment.objects.filter(recurrence_id=rid, status="CANCELADO_PROFISSIONAL")
        self.assertEqual(local_dates(cancelled), [date(2030, 1, 21), date(2030, 1, 28)])
        self.assertEqual(cancelled.first().cancellation_reason, "Recorrência finalizada")

    def test_finalize_keeps_appointments_by_default(self):
        rid = self._create().recurrence.id
        result = self.bus.dispatch(FinalizeRecurrenceCommand(
            recurrence_id=rid, clinic_id=self.clinic.id, end_date=date(2030, 1, 15),
        ))
        self.assertEqual(result.cancelled, 0)
        self.assertEqual(Appointment.objects.filter(recurrence_id=rid, status="AGENDADO").count(), 4)

    def test_finalize_in_the_past(self):
        rid = self._create().recurrence.id
        with self.assertRaisesMessage(RecurrenceValidationError, "Data final não pode estar no passado"):
            self.bus.dispatch(FinalizeRecurrenceCommand(
                recurrence_id=rid, clinic_id=self.clinic.id, end_date=date(2020, 1, 1),
            ))

    # ─────────────────────── edição ───────────────────────
    def test_update_time_shifts_future_appointments(self):
        rid = self._create().recurrence.id

        result = self.bus.dispatch(UpdateRecurrenceCommand(
            recurrence_id=rid, clinic_id=self.clinic.id, start_time=time(10, 0), apply_to="future",
        ))

        self.assertEqual(result.recurrence.start_time, time(10, 0))
        appointments = Appointment.objects.filter(recurrence_id=rid).order_by("scheduled_at")
        self.assertEqual(appointments.count(), 4)
        for apt in appointments:
            local = apt.scheduled_at.astimezone(TZ)
            self.assertEqual(local.time(), time(10, 0))
            self.assertEqual(local.weekday(), 0)
            self.assertEqual((apt.end_at - apt.scheduled_at).total_seconds(), 50 * 60)

    def test_update_without_propagation_keeps_appointments(self):
        rid = self._create().recurrence.id
        self.bus.dispatch(UpdateRecurrenceCommand(
            recurrence_id=rid, clinic_id=self.clinic.id, start_time=time(10, 0),
        ))
        self.assertEqual(AppointmentRecurrence.objects.get(id=rid).start_time, time(10, 0))
        first = Appointment.objects.filter(recurrence_id=rid).order_by("scheduled_at").first()
        self.assertEqual(first.scheduled_at.astimezone(TZ).time(), time(9, 0))

    def test_update_weekday_regenerates_series(self):
        rid = self._create().recurrence.id

        result = self.bus.dispatch(UpdateRecurrenceCommand(
            recurrence_id=rid, clinic_id=self.clinic.id, day_of_week=3, apply_to="future",
        ))

        self.assertEqual(result.removed, 4)
        self.assertEqual(len(result.created), 4)
        self.assertEqual(
            local_dates(Appointment.objects.filter(recurrence_id=rid)),
            [date(2030, 1, 9), date(2030, 1, 16), date(2030, 1, 23), date(2030, 1, 30)],
        )
        self.assertEqual(AppointmentRecurrence.objects.get(id=rid).last_generated_date, date(2030, 1, 30))

    def test_update_invalid_weekday(self):
        rid = self._create().recurrence.id
        with self.assertRaises(RecurrenceValidationError):
            self.bus.dispatch(UpdateRecurrenceCommand(recurrence_id=rid, clinic_id=self.clinic.id, day_of_week=7))

    # ─────────────────────── faturas já geradas ───────────────────────
    def _generate_january(self):
        return self.bus.dispatch(GenerateMonthlyInvoicesCommand(clinic_id=self.clinic.id, month=1, year=2030))

    def _invoice(self) -> Invoice:
        return Invoice.objects.get(clinic=self.clinic, patient=self.patient, reference_month=1, reference_year=2030)

    def _skip(self, rid, day):
        return self.bus.dispatch(SkipRecurrenceDateCommand(recurrence_id=rid, clinic_id=self.clinic.id, date=day))

    def test_skipped_date_leaves_pending_invoice(self):
        rid = self._create().recurrence.id
        self._generate_january()
        self.assertEqual(self._invoice().total_amount, Decimal("600.00"))

        self._skip(rid, date(2030, 1, 21))
        self.assertEqual(self._invoice().total_amount, Decimal("450.00"))
        self.assertFalse(InvoiceItem.objects.filter(appointment__isnull=True).exists())

        self._generate_january()
        invoice = self._invoice()
        self.assertEqual(invoice.total_amount, Decimal("450.00"))
        self.assertEqual(invoice.total_sessions, 3)
        self.assertEqual(invoice.items.filter(type="SESSAO_REGULAR").count(), 3)

    def test_skipped_date_keeps_line_of_paid_invoice(self):
        rid = self._create().recurrence.id
        self._generate_january()
        Invoice.objects.filter(id=self._invoice().id).update(status="PAGO")

        self._skip(rid, date(2030, 1, 21))

        invoice = self._invoice()
        self.assertEqual(invoice.total_amount, Decimal("600.00"))
        self.assertEqual(invoice.items.count(), 4)

    def test_weekday_change_rebills_new_sessions(self):
        rid = self._create().recurrence.id
        self._generate_january()

        self.bus.dispatch(UpdateRecurrenceCommand(
            recurrence_id=rid, clinic_id=self.clinic.id, day_of_week=3, apply_to="future",
        ))
        self.assertEqual(self._invoice().total_amount, Decimal("0.00"))

        self._generate_january()
        invoice = self._invoice()
        self.assertEqual(invoice.total_amount, Decimal("600.00"))
        self.assertEqual(invoice.items.count(), 4)
        self.assertEqual(
            set(invoice.items.values_list("appointment_id", flat=True)),
            set(Appointment.objects.filter(recurrence_id=rid).values_list("id", flat=True)),
        )


class ExtendRecurrencesTests(TestCase):
    """Última data gerada 28/01/2030 e hoje 10/01/2030: a série entra no horizonte."""

    def setUp(self):
        self.bus = billing_container.command_bus()
        self.clinic = make_clinic()
        self.professional = make_professional(self.clinic, buffer_between_slots=15)
        self.patient = make_patient(self.clinic)
        self.recurrence = make_recurrence(
            self.clinic, self.professional, self.patient,
            start_date=MONDAY, last_generated_date=date(2030, 1, 28),
        )

    def _extend(self):
        return self.bus.dispatch(ExtendRecurrencesCommand(today=date(2030, 1, 10)))

    def test_extends_three_months_after_last_date(self):
        result = self._extend()

        self.assertEqual(result.processed, 1)
        self.assertEqual(result.extended, 1)
        self.assertEqual(result.created, 12)
        self.assertEqual(result.errors, [])
        dates = local_dates(Appointment.objects.filter(recurrence=self.recurrence))
        self.assertEqual(dates[0], date(2030, 2, 4))
        self.assertEqual(dates[-1], date(2030, 4, 22))
        self.recurrence.refresh_from_db()
        self.assertEqual(self.recurrence.last_generated_date, date(2030, 4, 22))

    def test_exceptions_are_skipped(self):
        self.recurrence.exceptions = ["2030-02-11"]
        self.recurrence.save()

        self.assertEqual(self._extend().created, 11)
        self.assertNotIn(date(2030, 2, 11), local_dates(Appointment.objects.filter(recurrence=self.recurrence)))

    def test_conflicts_respect_buffer(self):
        # 09:50 + 15 min de intervalo invade o compromisso das 10:00
        make_appointment(self.clinic, self.professional, None, local_dt(2030, 2, 18, 10), minutes=30, type="TAREFA")

        self.assertEqual(self._extend().created, 11)
        self.assertNotIn(date(2030, 2, 18), local_dates(Appointment.objects.filter(recurrence=self.recurrence)))

    def test_exception_and_conflict_together(self):
        self.recurrence.exceptions = ["2030-02-11"]
        self.recurrence.save()
        make_appointment(self.clinic, self.professional, None, local_dt(2030, 2, 18, 10), minutes=30, type="TAREFA")

        self.assertEqual(self._extend().created, 10)

    def test_far_horizon_is_not_extended(self):
        self.recurrence.last_generated_date = date(2030, 6, 1)
        self.recurrence.save()

        result = self._extend()
        self.assertEqual(result.processed, 1)
        self.assertEqual(result.extended, 0)
        self.assertFalse(Appointment.objects.filter(recurrence=self.recurrence).exists())

    def test_inactive_clinic_is_ignored(self):
        self.clinic.is_active = False
        self.clinic.save()
        self.assertEqual(self._extend().processed, 0)
