from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.entities.enums import BillingMode


@dataclass(slots=True)
class PatientEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    name: str
    mother_name: str | None = None
    father_name: str | None = None
    phone: str | None = None
    email: str | None = None
    session_fee: Decimal | None = None
    billing_mode: str = BillingMode.PER_SESSION.value
    show_appointment_days_on_invoice: bool = False
    invoice_message_template: str | None = None
    reference_professional_id: uuid.UUID | None = None
    last_visit_at: datetime | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_monthly_fixed(self) -> bool:
        return self.billing_mode == BillingMode.MONTHLY_FIXED.value
