from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from clinic_billing.core.domain.entities.patient_entity import PatientEntity
from clinic_billing.core.domain.repositories.patient_repository import PatientRepository
from plugins.django_interface.models import Patient as PatientModel


class PatientRepoImpl(PatientRepository):
    def find_by_id(self, patient_id: UUID) -> PatientEntity | None:
        model = PatientModel.objects.filter(id=patient_id).first()
        return PatientEntity.from_model(model) if model else None

    def find_many(self, patient_ids: Iterable[UUID]) -> dict[UUID, PatientEntity]:
        return {
            m.id: PatientEntity.from_model(m)
            for m in PatientModel.objects.filter(id__in=list(patient_ids))
        }

    def touch_last_visit(self, patient_id: UUID, at: datetime) -> None:
        PatientModel.objects.filter(id=patient_id).update(last_visit_at=at)
