from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal


# ───────────────────────────────────────────────
# Event Base e Domain Events
# ───────────────────────────────────────────────
@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

# ╭──────────────────────────────────────────────╮
# │ 1. Agenda                                    │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class AppointmentStatusChangedEvent(DomainEvent):
    appointment_id: uuid.UUID
    clinic_id: uuid.UUID
    previous_status: str
    new_status: str


@dataclass(frozen=True)
class RecurrenceOccurrencesGeneratedEvent(DomainEvent):
    recurrence_id: uuid.UUID
    clinic_id: uuid.UUID
    created: int

# ╭──────────────────────────────────────────────╮
# │ 2. Créditos de sessão                        │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class SessionCreditIssuedEvent(DomainEvent):
    credit_id: uuid.UUID
    patient_id: uuid.UUID
    origin_appointment_id: uuid.UUID


@dataclass(frozen=True)
class SessionCreditConsumedEvent(DomainEvent):
    credit_id: uuid.UUID
    invoice_id: uuid.UUID


@dataclass(frozen=True)
class SessionCreditReleasedEvent(DomainEvent):
    credit_id: uuid.UUID
    invoice_id: uuid.UUID | None

# ╭──────────────────────────────────────────────╮
# │ 3. Faturas                                   │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class InvoicesGeneratedEvent(DomainEvent):
    clinic_id: uuid.UUID
    reference_month: int
    reference_year: int
    generated: int
    updated: int
    skipped: int


@dataclass(frozen=True)
class InvoiceSentEvent(DomainEvent):
    invoice_id: uuid.UUID
    patient_id: uuid.UUID
    total_amount: Decimal
