from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal

from clinic_billing.core.application.cqrs import CommandDTO


@dataclass(frozen=True)
class GenerateMonthlyInvoicesCommand(CommandDTO):
    clinic_id: uuid.UUID
    month: int
    year: int
    professional_profile_id: uuid.UUID | None = None

@dataclass(frozen=True)
class UpdateInvoiceCommand(CommandDTO):
    invoice_id: uuid.UUID
    clinic_id: uuid.UUID
    status: str | None = None
    notes: str | None = None

@dataclass(frozen=True)
class DeleteInvoiceCommand(CommandDTO):
    invoice_id: uuid.UUID
    clinic_id: uuid.UUID

@dataclass(frozen=True)
class SendInvoiceCommand(CommandDTO):
    invoice_id: uuid.UUID
    clinic_id: uuid.UUID

@dataclass(frozen=True)
class AddInvoiceItemCommand(CommandDTO):
    invoice_id: uuid.UUID
    clinic_id: uuid.UUID
    type: str
    description: str
    unit_price: Decimal
    quantity: int = 1

@dataclass(frozen=True)
class UpdateInvoiceItemCommand(CommandDTO):
    invoice_id: uuid.UUID
    item_id: uuid.UUID
    clinic_id: uuid.UUID
    description: str | None = None
    quantity: int | None = None
    unit_price: Decimal | None = None

@dataclass(frozen=True)
class DeleteInvoiceItemCommand(CommandDTO):
    invoice_id: uuid.UUID
    item_id: uuid.UUID
    clinic_id: uuid.UUID
