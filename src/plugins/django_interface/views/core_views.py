# ╭────────────────────────────────────────────────────────────────────────────╮
# │  ViewSets REST – Agenda (status, recorrências) + Faturamento               │
# │                                                                            │
# │  • Escopo por clínica → sempre a do ClinicMember autenticado               │
# │  • Erros de domínio   → decorator `track_http` (400 / 404 / 409)           │
# ╰────────────────────────────────────────────────────────────────────────────╯
from __future__ import annotations

import uuid

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from clinic_billing.adapters.config.composition_root import container as billing_container
from clinic_billing.adapters.observability.decorators import track_http
from clinic_billing.core.application.commands.appointment_commands import (
    ChangeAppointmentStatusCommand,
    CreateRecurrenceCommand,
    FinalizeRecurrenceCommand,
    SkipRecurrenceDateCommand,
    UnskipRecurrenceDateCommand,
    UpdateRecurrenceCommand,
)
from clinic_billing.core.application.commands.invoice_commands import (
    AddInvoiceItemCommand,
    DeleteInvoiceCommand,
    DeleteInvoiceItemCommand,
    GenerateMonthlyInvoicesCommand,
    SendInvoiceCommand,
    UpdateInvoiceCommand,
    UpdateInvoiceItemCommand,
)
from clinic_billing.core.application.cqrs import CommandBusImpl, QueryBusImpl
from clinic_billing.core.application.queries.invoice_queries import (
    GetInvoiceQuery,
    GetRepasseQuery,
    ListInvoicesQuery,
    ListSessionCreditsQuery,
)
from clinic_billing.core.domain.events.exceptions import BillingValidationError
from plugins.django_interface.permissions import IsClinicMember, professional_scope

# ────────────────────────────────  Serializers  ───────────────────────────────
from ..serializers.core_serializers import (
    AppointmentSerializer,
    GenerateInvoicesInputSerializer,
    InvoiceDetailSerializer,
    InvoiceItemInputSerializer,
    InvoiceItemPatchInputSerializer,
    InvoicePatchInputSerializer,
    InvoiceSerializer,
    RecurrenceCreateInputSerializer,
    RecurrenceDateInputSerializer,
    RecurrenceFinalizeInputSerializer,
    RecurrenceSerializer,
    RecurrenceUpdateInputSerializer,
    RepasseReportSerializer,
    SessionCreditSerializer,
    StatusChangeInputSerializer,
)

# ───────────────────────────────  CQRS Buses  ────────────────────────────────
command_bus: CommandBusImpl = billing_container.command_bus()
query_bus: QueryBusImpl = billing_container.query_bus()


# ╭──────────────────────────────────────────────────────────────────────────╮
# │ Helpers                                                                  │
# ╰──────────────────────────────────────────────────────────────────────────╯
def _validated(serializer_cls, data, **kwargs) -> dict:
    serializer = serializer_cls(data=data, **kwargs)
    if not serializer.is_valid():
        raise BillingValidationError(_first_error(serializer.errors))
    return serializer.validated_data


def _first_error(errors) -> str:
    field, messages = next(iter(errors.items()))
    message = messages[0] if isinstance(messages, list) else messages
    return f"{field}: {message}"


def _uuid_param(request, name: str) -> uuid.UUID | None:
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError as exc:
        raise BillingValidationError(f"{name}: UUID inválido") from exc


def _int_param(request, name: str) -> int | None:
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise BillingValidationError(f"{name}: inteiro inválido") from exc


class ClinicScopedMixin:
    permission_classes = [IsClinicMember]

    @staticmethod
    def _member(request):
        return request.clinic_member

    def _clinic_id(self, request) -> uuid.UUID:
        return self._member(request).clinic_id


# ╭──────────────────────────────────────────────╮
# │  Agenda                                      │
# ╰──────────────────────────────────────────────╯
class AppointmentStatusView(ClinicScopedMixin, APIView):
    """PATCH /api/appointments/<id>/status/: aplica a transição e os efeitos em créditos."""

    @track_http("AppointmentStatusView_patch")
    def patch(self, request, appointment_id=None):
        data = _validated(StatusChangeInputSerializer, request.data)
        result = command_bus.dispatch(ChangeAppointmentStatusCommand(
            appointment_id=appointment_id,
            clinic_id=self._clinic_id(request),
            status=data["status"],
            reason=data.get("reason") or None,
        ))
        payload = AppointmentSerializer(result.appointment).data
        payload["changed"] = result.changed
        payload["credit"] = SessionCreditSerializer(result.credit).data if result.credit else None
        return Response(payload, status=status.HTTP_200_OK)


class RecurrenceViewSet(ClinicScopedMixin, viewsets.ViewSet):

    @staticmethod
    def _result_payload(result) -> dict:
        return {
            "recurrence": RecurrenceSerializer(result.recurrence).data,
            "created": AppointmentSerializer(result.created, many=True).data,
            "removed": result.removed,
            "cancelled": result.cancelled,
            "skipped_dates": [d.isoformat() for d in result.skipped_dates],
        }

    @track_http("RecurrenceViewSet_create")
    def create(self, request):
        data = _validated(RecurrenceCreateInputSerializer, request.data)
        member = self._member(request)
        professional_id = professional_scope(member, data.get("professional_profile_id"))
        if professional_id is None:
            raise BillingValidationError("professional_profile_id é obrigatório")
        result = command_bus.dispatch(CreateRecurrenceCommand(
            clinic_id=member.clinic_id,
            professional_profile_id=professional_id,
            recurrence_type=data["recurrence_type"],
            recurrence_end_type=data["recurrence_end_type"],
            day_of_week=data["day_of_week"],
            start_time=data["start_time"],
            duration_minutes=data["duration_minutes"],
            start_date=data["start_date"],
            patient_id=data.get("patient_id"),
            title=data.get("title"),
            appointment_type=data["appointment_type"],
            end_date=data.get("end_date"),
            occurrences=data.get("occurrences"),
            price=data.get("price"),
        ))
        return Response(self._result_payload(result), status=status.HTTP_201_CREATED)

    @track_http("RecurrenceViewSet_partial_update")
    def partial_update(self, request, pk=None):
        data = _validated(RecurrenceUpdateInputSerializer, request.data)
        result = command_bus.dispatch(UpdateRecurrenceCommand(
            recurrence_id=uuid.UUID(str(pk)), clinic_id=self._clinic_id(request), **data,
        ))
        return Response(self._result_payload(result))

    @action(detail=True, methods=["post"])
    @track_http("RecurrenceViewSet_skip")
    def skip(self, request, pk=None):
        data = _validated(RecurrenceDateInputSerializer, request.data)
        result = command_bus.dispatch(SkipRecurrenceDateCommand(
            recurrence_id=uuid.UUID(str(pk)), clinic_id=self._clinic_id(request), date=data["date"],
        ))
        return Response(self._result_payload(result))

    @action(detail=True, methods=["post"])
    @track_http("RecurrenceViewSet_unskip")
    def unskip(self, request, pk=None):
        data = _validated(RecurrenceDateInputSerializer, request.data)
        result = command_bus.dispatch(UnskipRecurrenceDateCommand(
            recurrence_id=uuid.UUID(str(pk)), clinic_id=self._clinic_id(request), date=data["date"],
        ))
        return Response(self._result_payload(result))

    @action(detail=True, methods=["post"])
    @track_http("RecurrenceViewSet_finalize")
    def finalize(self, request, pk=None):
        data = _validated(RecurrenceFinalizeInputSerializer, request.data)
        result = command_bus.dispatch(FinalizeRecurrenceCommand(
            recurrence_id=uuid.UUID(str(pk)),
            clinic_id=self._clinic_id(request),
            end_date=data["end_date"],
            cancel_future_appointments=data["cancel_future_appointments"],
        ))
        return Response(self._result_payload(result))


# ╭──────────────────────────────────────────────╮
# │  Faturamento                                 │
# ╰──────────────────────────────────────────────╯
class InvoiceViewSet(ClinicScopedMixin, viewsets.ViewSet):

    @track_http("InvoiceViewSet_list")
    def list(self, request):
        member = self._member(request)
        filtros = {
            "clinic_id": member.clinic_id,
            "month": _int_param(request, "month"),
            "year": _int_param(request, "year"),
            "patient_id": _uuid_param(request, "patient_id"),
            "status": request.query_params.get("status") or None,
            "professional_id": professional_scope(member, _uuid_param(request, "professional_id")),
        }
        invoices = query_bus.dispatch(ListInvoicesQuery(filtros=filtros))
        results = []
        for dto in invoices:
            row = InvoiceSerializer(dto.invoice).data
            row["patient_name"] = dto.patient_name
            results.append(row)
        return Response({"results": results, "total_items": len(results)}, status=status.HTTP_200_OK)

    @track_http("InvoiceViewSet_retrieve")
    def retrieve(self, request, pk=None):
        detail = query_bus.dispatch(GetInvoiceQuery(invoice_id=uuid.UUID(str(pk)), clinic_id=self._clinic_id(request)))
        return Response(InvoiceDetailSerializer(detail).data)

    @track_http("InvoiceViewSet_partial_update")
    def partial_update(self, request, pk=None):
        data = _validated(InvoicePatchInputSerializer, request.data)
        invoice = command_bus.dispatch(UpdateInvoiceCommand(
            invoice_id=uuid.UUID(str(pk)),
            clinic_id=self._clinic_id(request),
            status=data.get("status"),
            notes=data.get("notes"),
        ))
        return Response(InvoiceSerializer(invoice).data)

    @track_http("InvoiceViewSet_destroy")
    def destroy(self, request, pk=None):
        command_bus.dispatch(DeleteInvoiceCommand(invoice_id=uuid.UUID(str(pk)), clinic_id=self._clinic_id(request)))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["post"])
    @track_http("InvoiceViewSet_generate")
    def generate(self, request):
        data = _validated(GenerateInvoicesInputSerializer, request.data)
        member = self._member(request)
        result = command_bus.dispatch(GenerateMonthlyInvoicesCommand(
            clinic_id=member.clinic_id,
            month=data["month"],
            year=data["year"],
            professional_profile_id=professional_scope(member, data.get("professional_profile_id")),
        ))
        return Response({
            "generated": result.generated,
            "updated": result.updated,
            "skipped": result.skipped,
            "invoices": InvoiceDetailSerializer(result.invoices, many=True).data,
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    @track_http("InvoiceViewSet_send")
    def send(self, request, pk=None):
        event = command_bus.dispatch(SendInvoiceCommand(invoice_id=uuid.UUID(str(pk)), clinic_id=self._clinic_id(request)))
        return Response({"invoice_id": str(event.invoice_id), "status": "ENVIADO"})

    @action(detail=True, methods=["post"])
    @track_http("InvoiceViewSet_items")
    def items(self, request, pk=None):
        data = _validated(InvoiceItemInputSerializer, request.data)
        detail = command_bus.dispatch(AddInvoiceItemCommand(
            invoice_id=uuid.UUID(str(pk)), clinic_id=self._clinic_id(request), **data,
        ))
        return Response(InvoiceDetailSerializer(detail).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch", "delete"], url_path=r"items/(?P<item_id>[0-9a-f-]+)")
    @track_http("InvoiceViewSet_item_detail")
    def item_detail(self, request, pk=None, item_id=None):
        ids = {"invoice_id": uuid.UUID(str(pk)), "item_id": uuid.UUID(item_id), "clinic_id": self._clinic_id(request)}
        if request.method == "DELETE":
            detail = command_bus.dispatch(DeleteInvoiceItemCommand(**ids))
        else:
            data = _validated(InvoiceItemPatchInputSerializer, request.data)
            detail = command_bus.dispatch(UpdateInvoiceItemCommand(**ids, **data))
        return Response(InvoiceDetailSerializer(detail).data)


class SessionCreditViewSet(ClinicScopedMixin, viewsets.ViewSet):

    @track_http("SessionCreditViewSet_list")
    def list(self, request):
        member = self._member(request)
        filtros = {
            "clinic_id": member.clinic_id,
            "patient_id": _uuid_param(request, "patient_id"),
            "status": request.query_params.get("status") or None,
            "month": _int_param(request, "month"),
            "year": _int_param(request, "year"),
        }
        if not member.is_admin:
            filtros["professional_id"] = professional_scope(member, None)
        credits = query_bus.dispatch(ListSessionCreditsQuery(filtros=filtros))
        data = SessionCreditSerializer(credits, many=True).data
        return Response({"results": data, "total_items": len(data)}, status=status.HTTP_200_OK)


class RepasseView(ClinicScopedMixin, APIView):
    """GET /api/repasse/?month=&year=&professional_id=: repasse mensal do profissional."""

    @track_http("RepasseView_get")
    def get(self, request):
        member = self._member(request)
        month = _int_param(request, "month")
        year = _int_param(request, "year")
        if month is None or year is None:
            raise BillingValidationError("month e year são obrigatórios")
        professional_id = professional_scope(member, _uuid_param(request, "professional_id"))
        if professional_id is None:
            raise BillingValidationError("professional_id é obrigatório")
        report = query_bus.dispatch(GetRepasseQuery(
            clinic_id=member.clinic_id, professional_profile_id=professional_id, month=month, year=year,
        ))
        return Response(RepasseReportSerializer(report).data)
