from dataclasses import dataclass, field
from datetime import date

from clinic_billing.core.domain.entities.appointment_entity import AppointmentEntity
from clinic_billing.core.domain.entities.recurrence_entity import AppointmentRecurrenceEntity
from clinic_billing.core.domain.entities.session_credit_entity import SessionCreditEntity


@dataclass
class StatusChangeResultDTO:
    appointment: AppointmentEntity
    changed: bool
    credit: SessionCreditEntity | None = None
    events: list = field(default_factory=list, repr=False)


@dataclass
class RecurrenceResultDTO:
    """Resultado de operações sobre recorrências que criam/removem agendamentos."""
    recurrence: AppointmentRecurrenceEntity
    created: list[AppointmentEntity] = field(default_factory=list)
    removed: int = 0
    cancelled: int = 0
    skipped_dates: list[date] = field(default_factory=list)
    events: list = field(default_factory=list, repr=False)


@dataclass
class RecurrenceExtensionResultDTO:
    processed: int = 0
    extended: int = 0
    created: int = 0
    errors: list[str] = field(default_factory=list)
    events: list = field(default_factory=list, repr=False)
