from __future__ import annotations

from typing import Any
from uuid import UUID

from clinic_billing.core.domain.entities.session_credit_entity import SessionCreditEntity
from clinic_billing.core.domain.repositories.session_credit_repository import SessionCreditRepository
from plugins.django_interface.models import SessionCredit as SessionCreditModel


class SessionCreditRepoImpl(SessionCreditRepository):
    def find_by_id(self, credit_id: UUID) -> SessionCreditEntity | None:
        model = SessionCreditModel.objects.filter(id=credit_id).first()
        return SessionCreditEntity.from_model(model) if model else None

    def find_by_origin_appointment(self, appointment_id: UUID) -> SessionCreditEntity | None:
        model = SessionCreditModel.objects.filter(origin_appointment_id=appointment_id).first()
        return SessionCreditEntity.from_model(model) if model else None

    def list_available(self, clinic_id: UUID, patient_id: UUID) -> list[SessionCreditEntity]:
        qs = SessionCreditModel.objects.filter(
            clinic_id=clinic_id, patient_id=patient_id, consumed_by_invoice__isnull=True,
        ).order_by("created_at", "id")
        return [SessionCreditEntity.from_model(m) for m in qs]

    def list_consumed_by_invoice(self, invoice_id: UUID) -> list[SessionCreditEntity]:
        qs = SessionCreditModel.objects.filter(consumed_by_invoice_id=invoice_id).order_by("created_at")
        return [SessionCreditEntity.from_model(m) for m in qs]

    def filter(self, clinic_id: UUID, **filtros: Any) -> list[SessionCreditEntity]:
        qs = SessionCreditModel.objects.filter(clinic_id=clinic_id)
        if filtros.get("patient_id"):
            qs = qs.filter(patient_id=filtros["patient_id"])
        if filtros.get("professional_id"):
            qs = qs.filter(professional_profile_id=filtros["professional_id"])
        status = filtros.get("status")
        if status == "available":
            qs = qs.filter(consumed_by_invoice__isnull=True)
        elif status == "consumed":
            qs = qs.filter(consumed_by_invoice__isnull=False)
        if filtros.get("month"):
            qs = qs.filter(created_at__month=filtros["month"])
        if filtros.get("year"):
            qs = qs.filter(created_at__year=filtros["year"])
        return [SessionCreditEntity.from_model(m) for m in qs.order_by("-created_at")]

    def save(self, credit: SessionCreditEntity) -> SessionCreditEntity:
        model, _ = SessionCreditModel.objects.update_or_create(
            id=credit.id,
            defaults={
                "clinic_id": credit.clinic_id,
                "professional_profile_id": credit.professional_profile_id,
                "patient_id": credit.patient_id,
                "origin_appointment_id": credit.origin_appointment_id,
                "reason": credit.reason,
                "consumed_by_invoice_id": credit.consumed_by_invoice_id,
                "consumed_at": credit.consumed_at,
            },
        )
        return SessionCreditEntity.from_model(model)

    def delete(self, credit_id: UUID) -> None:
        SessionCreditModel.objects.filter(id=credit_id).delete()
