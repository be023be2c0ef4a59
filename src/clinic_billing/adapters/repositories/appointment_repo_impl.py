from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

import structlog

from clinic_billing.core.domain.entities.appointment_entity import AppointmentEntity
from clinic_billing.core.domain.entities.enums import CANCELLED_STATUSES, INVOICEABLE_APPOINTMENT_TYPES
from clinic_billing.core.domain.repositories.appointment_repository import AppointmentRepository
from plugins.django_interface.models import Appointment as AppointmentModel

logger = structlog.get_logger(__name__)

_READONLY_FIELDS = ("id", "created_at", "updated_at")


def _model_data(entity: AppointmentEntity) -> dict:
    return entity.to_dict(exclude=_READONLY_FIELDS)


class AppointmentRepoImpl(AppointmentRepository):
    """Agenda persistida no ORM do Django."""

    # ────────────────────────── consultas ──────────────────────────
    def find_by_id(self, appointment_id: UUID) -> AppointmentEntity | None:
        model = AppointmentModel.objects.filter(id=appointment_id).first()
        return AppointmentEntity.from_model(model) if model else None

    def list_by_ids(self, appointment_ids: Iterable[UUID]) -> list[AppointmentEntity]:
        return [
            AppointmentEntity.from_model(m)
            for m in AppointmentModel.objects.filter(id__in=list(appointment_ids))
        ]

    def list_for_billing(
        self,
        clinic_id: UUID,
        start: datetime,
        end: datetime,
        professional_id: UUID | None = None,
        patient_ids: Iterable[UUID] | None = None,
    ) -> list[AppointmentEntity]:
        qs = AppointmentModel.objects.filter(
            clinic_id=clinic_id,
            scheduled_at__gte=start,
            scheduled_at__lt=end,
            type__in=INVOICEABLE_APPOINTMENT_TYPES,
            patient__isnull=False,
        )
        if professional_id is not None:
            qs = qs.filter(professional_profile_id=professional_id)
        if patient_ids is not None:
            qs = qs.filter(patient_id__in=list(patient_ids))
        return [AppointmentEntity.from_model(m) for m in qs.order_by("scheduled_at")]

    def list_by_recurrence(
        self,
        recurrence_id: UUID,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[AppointmentEntity]:
        qs = AppointmentModel.objects.filter(recurrence_id=recurrence_id)
        if start is not None:
            qs = qs.filter(scheduled_at__gte=start)
        if end is not None:
            qs = qs.filter(scheduled_at__lt=end)
        if statuses is not None:
            qs = qs.filter(status__in=list(statuses))
        return [AppointmentEntity.from_model(m) for m in qs.order_by("scheduled_at")]

    def _occupied(self, professional_id: UUID, start: datetime, end: datetime):
        return (
            AppointmentModel.objects
            .filter(professional_profile_id=professional_id, scheduled_at__lt=end, end_at__gt=start)
            .exclude(status__in=CANCELLED_STATUSES)
        )

    def existing_start_times(self, professional_id: UUID, start: datetime, end: datetime) -> set[datetime]:
        return set(self._occupied(professional_id, start, end).values_list("scheduled_at", flat=True))

    def busy_intervals(self, professional_id: UUID, start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
        return list(
            self._occupied(professional_id, start, end)
            .order_by("scheduled_at")
            .values_list("scheduled_at", "end_at")
        )

    # ─────────────────────── persistência ───────────────────────
    def bulk_create(self, appointments: list[AppointmentEntity]) -> list[AppointmentEntity]:
        if not appointments:
            return []
        models = AppointmentModel.objects.bulk_create(
            [AppointmentModel(id=a.id, **_model_data(a)) for a in appointments]
        )
        logger.debug("appointments.bulk_created", count=len(models))
        return [AppointmentEntity.from_model(m) for m in models]

    def save(self, appointment: AppointmentEntity) -> AppointmentEntity:
        model, _ = AppointmentModel.objects.update_or_create(
            id=appointment.id, defaults=_model_data(appointment),
        )
        return AppointmentEntity.from_model(model)

    def delete_many(self, appointment_ids: Iterable[UUID]) -> int:
        _, per_model = AppointmentModel.objects.filter(id__in=list(appointment_ids)).delete()
        return per_model.get(AppointmentModel._meta.label, 0)
