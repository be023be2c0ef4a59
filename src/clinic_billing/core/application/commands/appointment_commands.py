from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal

from clinic_billing.core.application.cqrs import CommandDTO


@dataclass(frozen=True)
class ChangeAppointmentStatusCommand(CommandDTO):
    appointment_id: uuid.UUID
    clinic_id: uuid.UUID
    status: str
    reason: str | None = None

@dataclass(frozen=True)
class CreateRecurrenceCommand(CommandDTO):
    clinic_id: uuid.UUID
    professional_profile_id: uuid.UUID
    recurrence_type: str
    recurrence_end_type: str
    day_of_week: int
    start_time: time
    duration_minutes: int
    start_date: date
    patient_id: uuid.UUID | None = None
    title: str | None = None
    appointment_type: str = "CONSULTA"
    end_date: date | None = None
    occurrences: int | None = None
    price: Decimal | None = None

@dataclass(frozen=True)
class UpdateRecurrenceCommand(CommandDTO):
    """`apply_to="future"` propaga a mudança para os agendamentos futuros."""
    recurrence_id: uuid.UUID
    clinic_id: uuid.UUID
    day_of_week: int | None = None
    start_time: time | None = None
    duration_minutes: int | None = None
    recurrence_type: str | None = None
    recurrence_end_type: str | None = None
    end_date: date | None = None
    occurrences: int | None = None
    apply_to: str | None = None

@dataclass(frozen=True)
class SkipRecurrenceDateCommand(CommandDTO):
    recurrence_id: uuid.UUID
    clinic_id: uuid.UUID
    date: date

@dataclass(frozen=True)
class UnskipRecurrenceDateCommand(CommandDTO):
    recurrence_id: uuid.UUID
    clinic_id: uuid.UUID
    date: date

@dataclass(frozen=True)
class FinalizeRecurrenceCommand(CommandDTO):
    recurrence_id: uuid.UUID
    clinic_id: uuid.UUID
    end_date: date
    cancel_future_appointments: bool = False

@dataclass(frozen=True)
class ExtendRecurrencesCommand(CommandDTO):
    today: date | None = None
