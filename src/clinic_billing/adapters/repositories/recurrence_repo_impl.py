from __future__ import annotations

from uuid import UUID

from clinic_billing.core.domain.entities.enums import RecurrenceEndType
from clinic_billing.core.domain.entities.recurrence_entity import AppointmentRecurrenceEntity
from clinic_billing.core.domain.repositories.recurrence_repository import RecurrenceRepository
from plugins.django_interface.models import AppointmentRecurrence as RecurrenceModel


class RecurrenceRepoImpl(RecurrenceRepository):
    def find_by_id(self, recurrence_id: UUID) -> AppointmentRecurrenceEntity | None:
        model = RecurrenceModel.objects.filter(id=recurrence_id).first()
        return AppointmentRecurrenceEntity.from_model(model) if model else None

    def save(self, recurrence: AppointmentRecurrenceEntity) -> AppointmentRecurrenceEntity:
        data = recurrence.to_dict(exclude=("id", "created_at", "updated_at"))
        data["exceptions"] = sorted(set(data["exceptions"]))
        model, _ = RecurrenceModel.objects.update_or_create(id=recurrence.id, defaults=data)
        return AppointmentRecurrenceEntity.from_model(model)

    def list_active_indefinite(self) -> list[AppointmentRecurrenceEntity]:
        qs = RecurrenceModel.objects.filter(
            is_active=True,
            recurrence_end_type=RecurrenceEndType.INDEFINITE.value,
            clinic__is_active=True,
        ).order_by("created_at")
        return [AppointmentRecurrenceEntity.from_model(m) for m in qs]

    def list_active_for_patients(self, patient_ids: list[UUID]) -> list[AppointmentRecurrenceEntity]:
        qs = RecurrenceModel.objects.filter(is_active=True, patient_id__in=list(patient_ids))
        return [AppointmentRecurrenceEntity.from_model(m) for m in qs]
