from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from clinic_billing.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class SessionCreditEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    professional_profile_id: uuid.UUID
    patient_id: uuid.UUID
    origin_appointment_id: uuid.UUID
    reason: str
    consumed_by_invoice_id: uuid.UUID | None = None
    consumed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_consumed(self) -> bool:
        return self.consumed_by_invoice_id is not None

    @property
    def item_description(self) -> str:
        """Descrição do item CREDITO gerado a partir deste crédito."""
        return f"Crédito: {self.reason}"
