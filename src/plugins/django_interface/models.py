"""
Domínio → ORM da agenda e do faturamento de clínicas.

⚑ Multi-tenant: toda linha de negócio pertence a uma `Clinic`
⚑ UUID como PK em todas as entidades de domínio
⚑ Unicidade da fatura por (clínica, paciente, mês, ano)
⚑ Crédito de sessão 1:1 com o agendamento de origem
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models
from django.db.models import CheckConstraint, Index, Q, UniqueConstraint

from clinic_billing.core.domain.entities.enums import (
    AppointmentStatus,
    AppointmentType,
    BillingMode,
    InvoiceItemType,
    InvoiceStatus,
    MemberRole,
    RecurrenceEndType,
    RecurrenceType,
)


# ╭──────────────────────────────────────────────╮
# │ 1. Clínicas e acesso                         │
# ╰──────────────────────────────────────────────╯
class Clinic(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    timezone = models.CharField(max_length=64, default="America/Sao_Paulo")
    invoice_message_template = models.TextField(blank=True, null=True)
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "clinics"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class ProfessionalProfile(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="professionals")
    name = models.CharField(max_length=255)
    repasse_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    buffer_between_slots = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "professional_profiles"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class ClinicMember(models.Model):
    """Vínculo usuário ↔ clínica; define o escopo das requisições."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="clinic_member")
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="members")
    role = models.CharField(max_length=20, choices=MemberRole.choices(), default=MemberRole.PROFESSIONAL.value)
    professional_profile = models.ForeignKey(
        ProfessionalProfile, on_delete=models.SET_NULL, null=True, blank=True, related_name="members",
    )

    class Meta:
        db_table = "clinic_members"

    def __str__(self) -> str:
        return f"{self.user} @ {self.clinic_id} ({self.role})"


# ╭──────────────────────────────────────────────╮
# │ 2. Pacientes                                 │
# ╰──────────────────────────────────────────────╯
class Patient(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="patients")
    name = models.CharField(max_length=255)
    mother_name = models.CharField(max_length=255, blank=True, null=True)
    father_name = models.CharField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=30, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    session_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    billing_mode = models.CharField(
        max_length=20, choices=BillingMode.choices(), default=BillingMode.PER_SESSION.value,
    )
    show_appointment_days_on_invoice = models.BooleanField(default=False)
    invoice_message_template = models.TextField(blank=True, null=True)
    reference_professional = models.ForeignKey(
        ProfessionalProfile, on_delete=models.SET_NULL, null=True, blank=True, related_name="reference_patients",
    )
    last_visit_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "patients"
        ordering = ["name"]
        indexes = [Index(fields=["clinic", "name"], name="patients_clinic_name_idx")]

    def __str__(self) -> str:
        return self.name


# ╭──────────────────────────────────────────────╮
# │ 3. Agenda                                    │
# ╰──────────────────────────────────────────────╯
class AppointmentRecurrence(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="recurrences")
    professional_profile = models.ForeignKey(ProfessionalProfile, on_delete=models.CASCADE, related_name="recurrences")
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, null=True, blank=True, related_name="recurrences")
    title = models.CharField(max_length=255, blank=True, null=True)
    appointment_type = models.CharField(
        max_length=20, choices=AppointmentType.choices(), default=AppointmentType.CONSULTA.value,
    )
    recurrence_type = models.CharField(max_length=20, choices=RecurrenceType.choices())
    recurrence_end_type = models.CharField(
        max_length=20, choices=RecurrenceEndType.choices(), default=RecurrenceEndType.INDEFINITE.value,
    )
    day_of_week = models.PositiveSmallIntegerField()  # 0 = domingo
    start_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField()
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    occurrences = models.PositiveIntegerField(null=True, blank=True)
    last_generated_date = models.DateField(null=True, blank=True)
    exceptions = models.JSONField(default=list, blank=True)  # ["YYYY-MM-DD", ...]
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "appointment_recurrences"
        constraints = [
            CheckConstraint(condition=Q(day_of_week__lte=6), name="ck_recurrence_day_of_week"),
        ]

    def __str__(self) -> str:
        return f"{self.recurrence_type} dia {self.day_of_week} {self.start_time}"


class Appointment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="appointments")
    professional_profile = models.ForeignKey(ProfessionalProfile, on_delete=models.CASCADE, related_name="appointments")
    patient = models.ForeignKey(Patient, on_delete=models.SET_NULL, null=True, blank=True, related_name="appointments")
    recurrence = models.ForeignKey(
        AppointmentRecurrence, on_delete=models.SET_NULL, null=True, blank=True, related_name="appointments",
    )
    group_id = models.UUIDField(null=True, blank=True, db_index=True)
    title = models.CharField(max_length=255, blank=True, null=True)
    scheduled_at = models.DateTimeField()
    end_at = models.DateTimeField()
    status = models.CharField(
        max_length=30, choices=AppointmentStatus.choices(), default=AppointmentStatus.AGENDADO.value, db_index=True,
    )
    type = models.CharField(max_length=20, choices=AppointmentType.choices(), default=AppointmentType.CONSULTA.value)
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    credit_generated = models.BooleanField(default=False)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "appointments"
        ordering = ["scheduled_at"]
        indexes = [
            Index(fields=["clinic", "scheduled_at"], name="appt_clinic_sched_idx"),
            Index(fields=["professional_profile", "scheduled_at"], name="appt_prof_sched_idx"),
            Index(fields=["recurrence", "scheduled_at"], name="appt_recurrence_sched_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.scheduled_at:%d/%m/%Y %H:%M} [{self.status}]"


# ╭──────────────────────────────────────────────╮
# │ 4. Faturamento                               │
# ╰──────────────────────────────────────────────╯
class Invoice(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="invoices")
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name="invoices")
    professional_profile = models.ForeignKey(ProfessionalProfile, on_delete=models.PROTECT, related_name="invoices")
    reference_month = models.PositiveSmallIntegerField()
    reference_year = models.PositiveSmallIntegerField()
    status = models.CharField(
        max_length=20, choices=InvoiceStatus.choices(), default=InvoiceStatus.PENDENTE.value, db_index=True,
    )
    total_sessions = models.IntegerField(default=0)
    credits_applied = models.IntegerField(default=0)
    extras_added = models.IntegerField(default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    due_date = models.DateField()
    show_appointment_days = models.BooleanField(default=False)
    message_body = models.TextField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "invoices"
        constraints = [
            UniqueConstraint(
                fields=["clinic", "patient", "reference_month", "reference_year"],
                name="uq_invoice_patient_period",
            ),
            CheckConstraint(condition=Q(reference_month__gte=1, reference_month__lte=12), name="ck_invoice_month"),
        ]
        indexes = [Index(fields=["clinic", "reference_year", "reference_month"], name="invoice_clinic_period_idx")]

    def __str__(self) -> str:
        return f"Fatura {self.reference_month:02d}/{self.reference_year} [{self.status}]"


class InvoiceItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    appointment = models.ForeignKey(
        Appointment, on_delete=models.SET_NULL, null=True, blank=True, related_name="invoice_items",
    )
    type = models.CharField(max_length=20, choices=InvoiceItemType.choices())
    description = models.CharField(max_length=255)
    quantity = models.IntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total = models.DecimalField(max_digits=12, decimal_places=2)
    position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "invoice_items"
        ordering = ["position", "created_at"]

    def __str__(self) -> str:
        return f"{self.description} ({self.total})"


class SessionCredit(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="session_credits")
    professional_profile = models.ForeignKey(ProfessionalProfile, on_delete=models.CASCADE, related_name="session_credits")
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name="session_credits")
    origin_appointment = models.OneToOneField(Appointment, on_delete=models.CASCADE, related_name="session_credit")
    reason = models.CharField(max_length=255)
    consumed_by_invoice = models.ForeignKey(
        Invoice, on_delete=models.SET_NULL, null=True, blank=True, related_name="consumed_credits",
    )
    consumed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "session_credits"
        ordering = ["created_at"]
        indexes = [Index(fields=["clinic", "patient", "consumed_by_invoice"], name="credit_clinic_patient_idx")]

    def __str__(self) -> str:
        return self.reason
