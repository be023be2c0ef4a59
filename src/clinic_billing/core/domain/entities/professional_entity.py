from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinic_billing.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class ProfessionalProfileEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    name: str
    repasse_percentage: Decimal = Decimal("0")
    buffer_between_slots: int = 0
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
