from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.entities.enums import (
    BILLABLE_STATUSES,
    CANCELLED_STATUSES,
    AppointmentStatus,
    AppointmentType,
)


@dataclass(slots=True)
class AppointmentEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    professional_profile_id: uuid.UUID
    scheduled_at: datetime
    end_at: datetime
    patient_id: uuid.UUID | None = None
    title: str | None = None
    status: str = AppointmentStatus.AGENDADO.value
    type: str = AppointmentType.CONSULTA.value
    recurrence_id: uuid.UUID | None = None
    group_id: uuid.UUID | None = None
    price: Decimal | None = None
    credit_generated: bool = False
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_billable(self) -> bool:
        return self.status in BILLABLE_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return self.status in CANCELLED_STATUSES

    def has_occurred(self, now: datetime) -> bool:
        return self.scheduled_at <= now
