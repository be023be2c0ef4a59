# =========================================================
# Serializers compatíveis com as *entities* (e não com os
# modelos Django) + serializers de entrada das rotas.
# =========================================================
from rest_framework import serializers

from clinic_billing.core.domain.entities.enums import (
    AppointmentStatus,
    AppointmentType,
    InvoiceItemType,
    InvoiceStatus,
    RecurrenceEndType,
    RecurrenceType,
)


# ───────────────────────────────────────────────
# Agenda
# ───────────────────────────────────────────────
class AppointmentSerializer(serializers.Serializer):
    id                      = serializers.UUIDField()
    clinic_id               = serializers.UUIDField()
    professional_profile_id = serializers.UUIDField()
    patient_id              = serializers.UUIDField(allow_null=True)
    recurrence_id           = serializers.UUIDField(allow_null=True)
    group_id                = serializers.UUIDField(allow_null=True)
    title                   = serializers.CharField(allow_null=True)
    scheduled_at            = serializers.DateTimeField()
    end_at                  = serializers.DateTimeField()
    status                  = serializers.CharField()
    type                    = serializers.CharField()
    price                   = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    credit_generated        = serializers.BooleanField()
    confirmed_at            = serializers.DateTimeField(allow_null=True)
    cancelled_at            = serializers.DateTimeField(allow_null=True)
    cancellation_reason     = serializers.CharField(allow_null=True)


class RecurrenceSerializer(serializers.Serializer):
    id                      = serializers.UUIDField()
    clinic_id               = serializers.UUIDField()
    professional_profile_id = serializers.UUIDField()
    patient_id              = serializers.UUIDField(allow_null=True)
    title                   = serializers.CharField(allow_null=True)
    appointment_type        = serializers.CharField()
    recurrence_type         = serializers.CharField()
    recurrence_end_type     = serializers.CharField()
    day_of_week             = serializers.IntegerField()
    start_time              = serializers.TimeField()
    duration_minutes        = serializers.IntegerField()
    start_date              = serializers.DateField()
    end_date                = serializers.DateField(allow_null=True)
    occurrences             = serializers.IntegerField(allow_null=True)
    last_generated_date     = serializers.DateField(allow_null=True)
    exceptions              = serializers.ListField(child=serializers.CharField())
    is_active               = serializers.BooleanField()


class StatusChangeInputSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AppointmentStatus.values())
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)


class RecurrenceCreateInputSerializer(serializers.Serializer):
    professional_profile_id = serializers.UUIDField(required=False)
    patient_id              = serializers.UUIDField(required=False, allow_null=True)
    title                   = serializers.CharField(required=False, allow_null=True, max_length=255)
    appointment_type        = serializers.ChoiceField(choices=AppointmentType.values(),
                                                      default=AppointmentType.CONSULTA.value)
    recurrence_type         = serializers.ChoiceField(choices=RecurrenceType.values())
    recurrence_end_type     = serializers.ChoiceField(choices=RecurrenceEndType.values(),
                                                      default=RecurrenceEndType.INDEFINITE.value)
    day_of_week             = serializers.IntegerField(min_value=0, max_value=6)
    start_time              = serializers.TimeField()
    duration_minutes        = serializers.IntegerField(min_value=1)
    start_date              = serializers.DateField()
    end_date                = serializers.DateField(required=False, allow_null=True)
    occurrences             = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    price                   = serializers.DecimalField(max_digits=10, decimal_places=2, required=False,
                                                       allow_null=True, min_value=0)


class RecurrenceUpdateInputSerializer(serializers.Serializer):
    day_of_week         = serializers.IntegerField(required=False, min_value=0, max_value=6)
    start_time          = serializers.TimeField(required=False)
    duration_minutes    = serializers.IntegerField(required=False, min_value=1)
    recurrence_type     = serializers.ChoiceField(choices=RecurrenceType.values(), required=False)
    recurrence_end_type = serializers.ChoiceField(choices=RecurrenceEndType.values(), required=False)
    end_date            = serializers.DateField(required=False, allow_null=True)
    occurrences         = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    apply_to            = serializers.ChoiceField(choices=["this", "future"], required=False, allow_null=True)


class RecurrenceDateInputSerializer(serializers.Serializer):
    date = serializers.DateField()


class RecurrenceFinalizeInputSerializer(serializers.Serializer):
    end_date                   = serializers.DateField()
    cancel_future_appointments = serializers.BooleanField(default=False)


# ───────────────────────────────────────────────
# Faturas & Itens
# ───────────────────────────────────────────────
class InvoiceItemSerializer(serializers.Serializer):
    id             = serializers.UUIDField()
    type           = serializers.CharField()
    description    = serializers.CharField()
    quantity       = serializers.IntegerField()
    unit_price     = serializers.DecimalField(max_digits=10, decimal_places=2)
    total          = serializers.DecimalField(max_digits=12, decimal_places=2)
    appointment_id = serializers.UUIDField(allow_null=True)


class InvoiceSerializer(serializers.Serializer):
    id                      = serializers.UUIDField()
    clinic_id               = serializers.UUIDField()
    patient_id              = serializers.UUIDField()
    professional_profile_id = serializers.UUIDField()
    reference_month         = serializers.IntegerField()
    reference_year          = serializers.IntegerField()
    due_date                = serializers.DateField()
    status                  = serializers.CharField()
    total_sessions          = serializers.IntegerField()
    credits_applied         = serializers.IntegerField()
    extras_added            = serializers.IntegerField()
    total_amount            = serializers.DecimalField(max_digits=12, decimal_places=2)
    show_appointment_days   = serializers.BooleanField()
    message_body            = serializers.CharField(allow_null=True)
    notes                   = serializers.CharField(allow_null=True)
    sent_at                 = serializers.DateTimeField(allow_null=True)
    paid_at                 = serializers.DateTimeField(allow_null=True)
    created_at              = serializers.DateTimeField(allow_null=True)
    updated_at              = serializers.DateTimeField(allow_null=True)


class InvoiceDetailSerializer(serializers.Serializer):
    """Serializa um InvoiceDetailDTO: cabeçalho achatado + itens."""

    def to_representation(self, instance):
        data = InvoiceSerializer(instance.invoice).data
        data["patient_name"] = instance.patient_name
        data["professional_name"] = instance.professional_name
        data["items"] = InvoiceItemSerializer(instance.items, many=True).data
        return data


class GenerateInvoicesInputSerializer(serializers.Serializer):
    # faixa validada no handler (mensagens de domínio)
    month                   = serializers.IntegerField()
    year                    = serializers.IntegerField()
    professional_profile_id = serializers.UUIDField(required=False, allow_null=True)


class InvoicePatchInputSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[InvoiceStatus.PENDENTE.value, InvoiceStatus.PAGO.value, InvoiceStatus.CANCELADO.value],
        required=False,
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class InvoiceItemInputSerializer(serializers.Serializer):
    type        = serializers.ChoiceField(choices=[
        InvoiceItemType.SESSAO_EXTRA.value,
        InvoiceItemType.REUNIAO_ESCOLA.value,
        InvoiceItemType.CREDITO.value,
    ])
    description = serializers.CharField(max_length=255)
    quantity    = serializers.IntegerField(min_value=1, default=1)
    unit_price  = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class InvoiceItemPatchInputSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=255, required=False)
    quantity    = serializers.IntegerField(min_value=1, required=False)
    unit_price  = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)


# ───────────────────────────────────────────────
# Créditos & Repasse
# ───────────────────────────────────────────────
class SessionCreditSerializer(serializers.Serializer):
    id                      = serializers.UUIDField()
    patient_id              = serializers.UUIDField()
    professional_profile_id = serializers.UUIDField()
    origin_appointment_id   = serializers.UUIDField()
    reason                  = serializers.CharField()
    consumed_by_invoice_id  = serializers.UUIDField(allow_null=True)
    consumed_at             = serializers.DateTimeField(allow_null=True)
    created_at              = serializers.DateTimeField(allow_null=True)
    is_consumed             = serializers.BooleanField()


class RepasseLineSerializer(serializers.Serializer):
    invoice_id     = serializers.UUIDField()
    patient_name   = serializers.CharField()
    total_sessions = serializers.IntegerField()
    gross_value    = serializers.DecimalField(max_digits=12, decimal_places=2, source="calc.gross_value")
    tax_amount     = serializers.DecimalField(max_digits=12, decimal_places=2, source="calc.tax_amount")
    after_tax      = serializers.DecimalField(max_digits=12, decimal_places=2, source="calc.after_tax")
    repasse_value  = serializers.DecimalField(max_digits=12, decimal_places=2, source="calc.repasse_value")


class RepasseSummarySerializer(serializers.Serializer):
    total_invoices  = serializers.IntegerField()
    total_sessions  = serializers.IntegerField()
    total_gross     = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_tax       = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_after_tax = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_repasse   = serializers.DecimalField(max_digits=14, decimal_places=2)


class RepasseReportSerializer(serializers.Serializer):
    professional_id    = serializers.UUIDField()
    professional_name  = serializers.CharField()
    month              = serializers.IntegerField()
    year               = serializers.IntegerField()
    tax_percentage     = serializers.DecimalField(max_digits=5, decimal_places=2)
    repasse_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    lines              = RepasseLineSerializer(many=True)
    summary            = RepasseSummarySerializer()
