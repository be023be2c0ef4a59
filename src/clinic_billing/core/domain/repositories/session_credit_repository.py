from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from clinic_billing.core.domain.entities.session_credit_entity import SessionCreditEntity


class SessionCreditRepository(ABC):
    @abstractmethod
    def find_by_id(self, credit_id: UUID) -> SessionCreditEntity | None:
        ...

    @abstractmethod
    def find_by_origin_appointment(self, appointment_id: UUID) -> SessionCreditEntity | None:
        """Crédito gerado por um agendamento (relação 1:1)."""
        ...

    @abstractmethod
    def list_available(self, clinic_id: UUID, patient_id: UUID) -> list[SessionCreditEntity]:
        """Créditos não consumidos do paciente, do mais antigo ao mais novo."""
        ...

    @abstractmethod
    def list_consumed_by_invoice(self, invoice_id: UUID) -> list[SessionCreditEntity]:
        ...

    @abstractmethod
    def filter(self, clinic_id: UUID, **filtros: Any) -> list[SessionCreditEntity]:
        """Listagem com filtros: patient_id, status (available|consumed), month, year, professional_id."""
        ...

    @abstractmethod
    def save(self, credit: SessionCreditEntity) -> SessionCreditEntity:
        ...

    @abstractmethod
    def delete(self, credit_id: UUID) -> None:
        ...
