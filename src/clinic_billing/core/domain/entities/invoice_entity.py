from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.entities.enums import (
    LOCKED_INVOICE_STATUSES,
    InvoiceItemType,
    InvoiceStatus,
)


@dataclass(slots=True)
class InvoiceItemEntity(EntityMixin):
    id: uuid.UUID
    invoice_id: uuid.UUID | None
    type: str
    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    appointment_id: uuid.UUID | None = None
    created_at: datetime | None = None

    @property
    def is_credit(self) -> bool:
        return self.type == InvoiceItemType.CREDITO.value


@dataclass(slots=True)
class InvoiceEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    patient_id: uuid.UUID
    professional_profile_id: uuid.UUID
    reference_month: int
    reference_year: int
    due_date: date
    status: str = InvoiceStatus.PENDENTE.value
    total_sessions: int = 0
    credits_applied: int = 0
    extras_added: int = 0
    total_amount: Decimal = Decimal("0")
    show_appointment_days: bool = False
    message_body: str | None = None
    notes: str | None = None
    sent_at: datetime | None = None
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_locked(self) -> bool:
        """PAGO/ENVIADO: a regeneração não altera a fatura."""
        return self.status in LOCKED_INVOICE_STATUSES

    def apply_totals(self, totals) -> None:
        self.total_sessions = totals.total_sessions
        self.credits_applied = totals.credits_applied
        self.extras_added = totals.extras_added
        self.total_amount = totals.total_amount
