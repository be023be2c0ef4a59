import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from pydantic import BaseModel, Field

from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity, InvoiceItemEntity


class InvoicePeriodDTO(BaseModel):
    """Período de faturamento validado antes de qualquer consulta ao banco."""
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2020, le=2100)
    professional_profile_id: uuid.UUID | None = None


class InvoiceItemInputDTO(BaseModel):
    """Item adicionado manualmente a uma fatura."""
    type: str
    description: str = Field(min_length=1, max_length=255)
    quantity: int = Field(default=1, ge=1)
    unit_price: Decimal = Field(ge=0, decimal_places=2)


@dataclass
class InvoiceDetailDTO:
    invoice: InvoiceEntity
    items: list[InvoiceItemEntity]
    patient_name: str | None = None
    professional_name: str | None = None


@dataclass
class InvoiceGenerationResultDTO:
    generated: int = 0
    updated: int = 0
    skipped: int = 0
    invoices: list[InvoiceDetailDTO] = field(default_factory=list)
    events: list = field(default_factory=list, repr=False)


@dataclass
class RepasseReportDTO:
    professional_id: uuid.UUID
    professional_name: str
    month: int
    year: int
    tax_percentage: Decimal
    repasse_percentage: Decimal
    lines: list = field(default_factory=list)
    summary: object | None = None
