import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

APPOINTMENT_STATUS_CHOICES = [
    ("AGENDADO", "AGENDADO"),
    ("CONFIRMADO", "CONFIRMADO"),
    ("FINALIZADO", "FINALIZADO"),
    ("CANCELADO_ACORDADO", "CANCELADO_ACORDADO"),
    ("CANCELADO_FALTA", "CANCELADO_FALTA"),
    ("CANCELADO_PROFISSIONAL", "CANCELADO_PROFISSIONAL"),
]
APPOINTMENT_TYPE_CHOICES = [
    ("CONSULTA", "CONSULTA"),
    ("TAREFA", "TAREFA"),
    ("LEMBRETE", "LEMBRETE"),
    ("NOTA", "NOTA"),
    ("REUNIAO", "REUNIAO"),
]
RECURRENCE_TYPE_CHOICES = [("WEEKLY", "WEEKLY"), ("BIWEEKLY", "BIWEEKLY"), ("MONTHLY", "MONTHLY")]
RECURRENCE_END_TYPE_CHOICES = [
    ("BY_DATE", "BY_DATE"),
    ("BY_OCCURRENCES", "BY_OCCURRENCES"),
    ("INDEFINITE", "INDEFINITE"),
]
INVOICE_STATUS_CHOICES = [
    ("PENDENTE", "PENDENTE"),
    ("ENVIADO", "ENVIADO"),
    ("PAGO", "PAGO"),
    ("CANCELADO", "CANCELADO"),
]
INVOICE_ITEM_TYPE_CHOICES = [
    ("SESSAO_REGULAR", "SESSAO_REGULAR"),
    ("SESSAO_EXTRA", "SESSAO_EXTRA"),
    ("SESSAO_GRUPO", "SESSAO_GRUPO"),
    ("REUNIAO_ESCOLA", "REUNIAO_ESCOLA"),
    ("CREDITO", "CREDITO"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Clinic",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=100, unique=True)),
                ("timezone", models.CharField(default="America/Sao_Paulo", max_length=64)),
                ("invoice_message_template", models.TextField(blank=True, null=True)),
                ("tax_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"db_table": "clinics", "ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="ProfessionalProfile",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("repasse_percentage", models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ("buffer_between_slots", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="professionals",
                    to="django_interface.clinic",
                )),
            ],
            options={"db_table": "professional_profiles", "ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="ClinicMember",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("role", models.CharField(
                    choices=[("ADMIN", "ADMIN"), ("PROFESSIONAL", "PROFESSIONAL")],
                    default="PROFESSIONAL", max_length=20,
                )),
                ("clinic", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="members",
                    to="django_interface.clinic",
                )),
                ("professional_profile", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="members",
                    to="django_interface.professionalprofile",
                )),
                ("user", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE, related_name="clinic_member",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={"db_table": "clinic_members"},
        ),
        migrations.CreateModel(
            name="Patient",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("mother_name", models.CharField(blank=True, max_length=255, null=True)),
                ("father_name", models.CharField(blank=True, max_length=255, null=True)),
                ("phone", models.CharField(blank=True, max_length=30, null=True)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("session_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("billing_mode", models.CharField(
                    choices=[("PER_SESSION", "PER_SESSION"), ("MONTHLY_FIXED", "MONTHLY_FIXED")],
                    default="PER_SESSION", max_length=20,
                )),
                ("show_appointment_days_on_invoice", models.BooleanField(default=False)),
                ("invoice_message_template", models.TextField(blank=True, null=True)),
                ("last_visit_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="patients",
                    to="django_interface.clinic",
                )),
                ("reference_professional", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="reference_patients", to="django_interface.professionalprofile",
                )),
            ],
            options={
                "db_table": "patients",
                "ordering": ["name"],
                "indexes": [models.Index(fields=["clinic", "name"], name="patients_clinic_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="AppointmentRecurrence",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(blank=True, max_length=255, null=True)),
                ("appointment_type", models.CharField(
                    choices=APPOINTMENT_TYPE_CHOICES, default="CONSULTA", max_length=20,
                )),
                ("recurrence_type", models.CharField(choices=RECURRENCE_TYPE_CHOICES, max_length=20)),
                ("recurrence_end_type", models.CharField(
                    choices=RECURRENCE_END_TYPE_CHOICES, default="INDEFINITE", max_length=20,
                )),
                ("day_of_week", models.PositiveSmallIntegerField()),
                ("start_time", models.TimeField()),
                ("duration_minutes", models.PositiveIntegerField()),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(blank=True, null=True)),
                ("occurrences", models.PositiveIntegerField(blank=True, null=True)),
                ("last_generated_date", models.DateField(blank=True, null=True)),
                ("exceptions", models.JSONField(blank=True, default=list)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="recurrences",
                    to="django_interface.clinic",
                )),
                ("patient", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="recurrences",
                    to="django_interface.patient",
                )),
                ("professional_profile", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="recurrences",
                    to="django_interface.professionalprofile",
                )),
            ],
            options={
                "db_table": "appointment_recurrences",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(day_of_week__lte=6), name="ck_recurrence_day_of_week",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Appointment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("group_id", models.UUIDField(blank=True, db_index=True, null=True)),
                ("title", models.CharField(blank=True, max_length=255, null=True)),
                ("scheduled_at", models.DateTimeField()),
                ("end_at", models.DateTimeField()),
                ("status", models.CharField(
                    choices=APPOINTMENT_STATUS_CHOICES, db_index=True, default="AGENDADO", max_length=30,
                )),
                ("type", models.CharField(choices=APPOINTMENT_TYPE_CHOICES, default="CONSULTA", max_length=20)),
                ("price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("credit_generated", models.BooleanField(default=False)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.CharField(blank=True, max_length=255, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="appointments",
                    to="django_interface.clinic",
                )),
                ("patient", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="appointments", to="django_interface.patient",
                )),
                ("professional_profile", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="appointments",
                    to="django_interface.professionalprofile",
                )),
                ("recurrence", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="appointments", to="django_interface.appointmentrecurrence",
                )),
            ],
            options={
                "db_table": "appointments",
                "ordering": ["scheduled_at"],
                "indexes": [
                    models.Index(fields=["clinic", "scheduled_at"], name="appt_clinic_sched_idx"),
                    models.Index(fields=["professional_profile", "scheduled_at"], name="appt_prof_sched_idx"),
                    models.Index(fields=["recurrence", "scheduled_at"], name="appt_recurrence_sched_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("reference_month", models.PositiveSmallIntegerField()),
                ("reference_year", models.PositiveSmallIntegerField()),
                ("status", models.CharField(
                    choices=INVOICE_STATUS_CHOICES, db_index=True, default="PENDENTE", max_length=20,
                )),
                ("total_sessions", models.IntegerField(default=0)),
                ("credits_applied", models.IntegerField(default=0)),
                ("extras_added", models.IntegerField(default=0)),
                ("total_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("due_date", models.DateField()),
                ("show_appointment_days", models.BooleanField(default=False)),
                ("message_body", models.TextField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="invoices",
                    to="django_interface.clinic",
                )),
                ("patient", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="invoices",
                    to="django_interface.patient",
                )),
                ("professional_profile", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="invoices",
                    to="django_interface.professionalprofile",
                )),
            ],
            options={
                "db_table": "invoices",
                "indexes": [
                    models.Index(fields=["clinic", "reference_year", "reference_month"],
                                 name="invoice_clinic_period_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("clinic", "patient", "reference_month", "reference_year"),
                        name="uq_invoice_patient_period",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(reference_month__gte=1, reference_month__lte=12),
                        name="ck_invoice_month",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("type", models.CharField(choices=INVOICE_ITEM_TYPE_CHOICES, max_length=20)),
                ("description", models.CharField(max_length=255)),
                ("quantity", models.IntegerField(default=1)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("total", models.DecimalField(decimal_places=2, max_digits=12)),
                ("position", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("appointment", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="invoice_items", to="django_interface.appointment",
                )),
                ("invoice", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="items",
                    to="django_interface.invoice",
                )),
            ],
            options={"db_table": "invoice_items", "ordering": ["position", "created_at"]},
        ),
        migrations.CreateModel(
            name="SessionCredit",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("reason", models.CharField(max_length=255)),
                ("consumed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("clinic", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="session_credits",
                    to="django_interface.clinic",
                )),
                ("consumed_by_invoice", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="consumed_credits", to="django_interface.invoice",
                )),
                ("origin_appointment", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE, related_name="session_credit",
                    to="django_interface.appointment",
                )),
                ("patient", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="session_credits",
                    to="django_interface.patient",
                )),
                ("professional_profile", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="session_credits",
                    to="django_interface.professionalprofile",
                )),
            ],
            options={
                "db_table": "session_credits",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["clinic", "patient", "consumed_by_invoice"],
                                 name="credit_clinic_patient_idx"),
                ],
            },
        ),
    ]
