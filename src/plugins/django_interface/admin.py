"""
Admin site registry
-------------------
Registra os modelos da agenda e do faturamento de forma dinâmica.
"""

import structlog
from django.contrib import admin as django_admin

from . import models

logger = structlog.get_logger(__name__)

# ╭──────────────────────────────────────────────╮
# │ Configuração de cada ModelAdmin             │
# ╰──────────────────────────────────────────────╯
MODEL_ADMIN_REGISTRY: dict[type[models.models.Model], dict] = {
    # 1. Clínicas e acesso
    models.Clinic: dict(
        list_display=("name", "slug", "timezone", "tax_percentage", "is_active"),
        search_fields=("name", "slug"),
    ),
    models.ProfessionalProfile: dict(
        list_display=("name", "clinic", "repasse_percentage", "buffer_between_slots", "is_active"),
        list_filter=("clinic", "is_active"),
        search_fields=("name",),
    ),
    models.ClinicMember: dict(
        list_display=("user", "clinic", "role", "professional_profile"),
        list_filter=("clinic", "role"),
    ),
    # 2. Pacientes
    models.Patient: dict(
        list_display=("name", "clinic", "session_fee", "billing_mode", "is_active"),
        list_filter=("clinic", "billing_mode", "is_active"),
        search_fields=("name", "mother_name", "father_name"),
    ),
    # 3. Agenda
    models.AppointmentRecurrence: dict(
        list_display=("professional_profile", "patient", "recurrence_type", "day_of_week", "start_time",
                      "recurrence_end_type", "last_generated_date", "is_active"),
        list_filter=("recurrence_type", "recurrence_end_type", "is_active"),
    ),
    models.Appointment: dict(
        list_display=("scheduled_at", "professional_profile", "patient", "type", "status"),
        list_filter=("clinic", "status", "type"),
        date_hierarchy="scheduled_at",
    ),
    # 4. Faturamento
    models.Invoice: dict(
        list_display=("patient", "reference_month", "reference_year", "status", "total_amount", "due_date"),
        list_filter=("clinic", "status", "reference_year", "reference_month"),
        search_fields=("patient__name",),
    ),
    models.InvoiceItem: dict(
        list_display=("invoice", "type", "description", "quantity", "total"),
        list_filter=("type",),
    ),
    models.SessionCredit: dict(
        list_display=("patient", "reason", "consumed_by_invoice", "consumed_at", "created_at"),
        list_filter=("clinic",),
    ),
}

# ╭──────────────────────────────────────────────╮
# │ Registro dinâmico                           │
# ╰──────────────────────────────────────────────╯
for model, opts in MODEL_ADMIN_REGISTRY.items():
    admin_class = type(f"{model.__name__}Admin", (django_admin.ModelAdmin,), opts)
    django_admin.site.register(model, admin_class)
    logger.debug("Registered model in admin", model=model.__name__)
