from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinic_billing.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class ClinicEntity(EntityMixin):
    id: uuid.UUID
    name: str
    slug: str
    timezone: str = "America/Sao_Paulo"
    invoice_message_template: str | None = None
    tax_percentage: Decimal = Decimal("0")
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
