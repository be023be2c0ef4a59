from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.entities.enums import RecurrenceEndType, RecurrenceType


@dataclass(slots=True)
class AppointmentRecurrenceEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    professional_profile_id: uuid.UUID
    recurrence_type: str
    day_of_week: int  # 0 = domingo … 6 = sábado
    start_time: time
    duration_minutes: int
    start_date: date
    recurrence_end_type: str = RecurrenceEndType.INDEFINITE.value
    patient_id: uuid.UUID | None = None
    title: str | None = None
    appointment_type: str = "CONSULTA"
    end_date: date | None = None
    occurrences: int | None = None
    last_generated_date: date | None = None
    exceptions: list[str] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def interval_days(self) -> int:
        return RecurrenceType(self.recurrence_type).interval_days

    @property
    def is_indefinite(self) -> bool:
        return self.recurrence_end_type == RecurrenceEndType.INDEFINITE.value

    def is_exception(self, day: date) -> bool:
        return day.isoformat() in self.exceptions
