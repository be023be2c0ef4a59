import uuid
from dataclasses import dataclass

from clinic_billing.core.application.cqrs import QueryDTO


@dataclass(frozen=True)
class GetInvoiceQuery:
    invoice_id: uuid.UUID
    clinic_id: uuid.UUID

class ListInvoicesQuery(QueryDTO[dict]):
    """filtros: clinic_id (obrigatório), month, year, professional_id, patient_id, status."""
    pass

class ListSessionCreditsQuery(QueryDTO[dict]):
    """filtros: clinic_id (obrigatório), patient_id, status (available|consumed), month, year."""
    pass

@dataclass(frozen=True)
class GetRepasseQuery:
    clinic_id: uuid.UUID
    professional_profile_id: uuid.UUID
    month: int
    year: int
