from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase

from plugins.django_interface.models import Appointment, Clinic, ClinicMember, Invoice, ProfessionalProfile
from tests.helpers.billing_factories import (
    local_dt,
    make_appointment,
    make_clinic,
    make_patient,
    make_professional,
    make_recurrence,
)


class GenerateInvoicesCommandTests(TestCase):
    def setUp(self):
        self.clinic = make_clinic()
        professional = make_professional(self.clinic)
        patient = make_patient(self.clinic)
        recurrence = make_recurrence(self.clinic, professional, patient)
        for day in (1, 8, 15, 22):
            make_appointment(self.clinic, professional, patient, local_dt(2024, 1, day), recurrence=recurrence)

    def _run(self, *args):
        out = StringIO()
        call_command("generate_invoices", "--clinic-id", str(self.clinic.id), *args, stdout=out)
        return out.getvalue()

    def test_generates_then_updates(self):
        first = self._run("--month", "1", "--year", "2024")
        self.assertIn("Faturas: 1 geradas, 0 atualizadas, 0 ignoradas", first)
        self.assertEqual(Invoice.objects.get().total_amount, Decimal("600.00"))

        second = self._run("--month", "1", "--year", "2024")
        self.assertIn("Faturas: 0 geradas, 1 atualizadas, 0 ignoradas", second)
        self.assertEqual(Invoice.objects.count(), 1)

    def test_invalid_month_raises_command_error(self):
        with self.assertRaises(CommandError):
            self._run("--month", "13", "--year", "2024")


class ExtendRecurrencesCommandTests(TestCase):
    def test_extends_with_reference_date(self):
        clinic = make_clinic()
        professional = make_professional(clinic)
        recurrence = make_recurrence(
            clinic, professional, make_patient(clinic),
            start_date=date(2030, 1, 7), last_generated_date=date(2030, 1, 28),
        )
        out = StringIO()

        call_command("extend_recurrences", "--today", "2030-01-10", stdout=out)

        self.assertIn("Recorrências: 1 avaliadas, 1 estendidas, 12 agendamentos criados", out.getvalue())
        self.assertEqual(Appointment.objects.filter(recurrence=recurrence).count(), 12)


class SeedClinicCommandTests(TestCase):
    ARGS = (
        "--slug", "clinica-sol", "--name", "Clínica Sol", "--username", "gestor", "--password", "s3nha",
        "--tax", "6", "--professional-name", "Dra. Helena",
    )

    def test_seed_is_idempotent(self):
        call_command("seed_clinic", *self.ARGS, stdout=StringIO())
        call_command("seed_clinic", *self.ARGS, stdout=StringIO())

        clinic = Clinic.objects.get(slug="clinica-sol")
        self.assertEqual(clinic.tax_percentage, Decimal("6"))
        self.assertEqual(ProfessionalProfile.objects.filter(clinic=clinic).count(), 1)

        user = get_user_model().objects.get(username="gestor")
        self.assertTrue(user.check_password("s3nha"))
        member = ClinicMember.objects.get(user=user)
        self.assertEqual(member.clinic_id, clinic.id)
        self.assertEqual(member.role, "ADMIN")
        self.assertEqual(member.professional_profile.name, "Dra. Helena")

    def test_update_message(self):
        out = StringIO()
        call_command("seed_clinic", *self.ARGS, stdout=StringIO())
        call_command("seed_clinic", *self.ARGS, stdout=out)
        self.assertIn("Clínica 'Clínica Sol' atualizada", out.getvalue())


class CeleryTaskTests(TestCase):
    def test_generate_task_runs_command(self):
        from clinica_api.tasks import generate_invoices_for_clinic

        clinic = make_clinic()
        professional = make_professional(clinic)
        patient = make_patient(clinic)
        make_appointment(clinic, professional, patient, local_dt(2024, 1, 8))

        result = generate_invoices_for_clinic.apply(args=[str(clinic.id), 1, 2024])

        self.assertTrue(result.successful())
        self.assertEqual(Invoice.objects.get(clinic=clinic).total_amount, Decimal("150.00"))

    def test_extend_task_accepts_reference_date(self):
        from clinica_api.tasks import extend_recurrences

        clinic = make_clinic()
        recurrence = make_recurrence(
            clinic, make_professional(clinic), make_patient(clinic),
            start_date=date(2030, 1, 7), last_generated_date=date(2030, 1, 28),
        )

        self.assertTrue(extend_recurrences.apply(kwargs={"today": "2030-01-10"}).successful())
        self.assertEqual(Appointment.objects.filter(recurrence=recurrence).count(), 12)

    def test_failed_task_is_logged_with_its_arguments(self):
        from clinica_api.tasks import generate_invoices_for_clinic

        clinic = make_clinic()
        with patch("clinica_api.tasks.log") as task_log:
            result = generate_invoices_for_clinic.apply(args=[str(clinic.id), 13, 2024])

        self.assertTrue(result.failed())
        task_log.error.assert_called_once()
        event, = task_log.error.call_args.args
        self.assertEqual(event, "task.failed")
        self.assertEqual(task_log.error.call_args.kwargs["task_args"], [str(clinic.id), 13, 2024])
        self.assertEqual(task_log.error.call_args.kwargs["error_type"], "CommandError")

    def test_monthly_fan_out_with_explicit_period(self):
        from clinica_api.tasks import schedule_monthly_invoices

        active = make_clinic()
        make_clinic(is_active=False)
        with patch("clinica_api.tasks.generate_invoices_for_clinic") as job:
            result = schedule_monthly_invoices.apply(kwargs={"month": 3, "year": 2024})

        self.assertEqual(result.get(), 1)
        job.delay.assert_called_once_with(str(active.id), 3, 2024)

    def test_monthly_fan_out_uses_each_clinic_timezone(self):
        from clinica_api.tasks import schedule_monthly_invoices

        sao_paulo = make_clinic()
        tokyo = make_clinic(timezone="Asia/Tokyo")
        with patch("clinica_api.tasks.generate_invoices_for_clinic") as job:
            with patch("clinica_api.tasks.datetime") as clock:
                clock.now.return_value = datetime(2024, 2, 1, 1, 0, tzinfo=UTC)
                schedule_monthly_invoices.apply()

        self.assertEqual(job.delay.call_count, 2)
        job.delay.assert_any_call(str(sao_paulo.id), 1, 2024)
        job.delay.assert_any_call(str(tokyo.id), 2, 2024)


class ReferencePeriodTests(SimpleTestCase):
    def test_month_follows_clinic_timezone(self):
        from clinica_api.tasks import reference_period

        # 01/02 01:00 UTC ainda é 31/01 em São Paulo
        now = datetime(2024, 2, 1, 1, 0, tzinfo=UTC)
        self.assertEqual(reference_period("America/Sao_Paulo", now), (1, 2024))
        self.assertEqual(reference_period("UTC", now), (2, 2024))

    def test_year_turn(self):
        from clinica_api.tasks import reference_period

        now = datetime(2025, 1, 1, 2, 30, tzinfo=UTC)
        self.assertEqual(reference_period("America/Sao_Paulo", now), (12, 2024))
