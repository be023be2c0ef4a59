from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any
from uuid import UUID

from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity, InvoiceItemEntity


class InvoiceRepository(ABC):
    @abstractmethod
    def find_by_id(self, invoice_id: UUID) -> InvoiceEntity | None:
        ...

    @abstractmethod
    def find_by_period(self, clinic_id: UUID, patient_id: UUID, month: int, year: int) -> InvoiceEntity | None:
        """Chave natural da fatura: (clínica, paciente, mês, ano)."""
        ...

    @abstractmethod
    def filter(self, clinic_id: UUID, **filtros: Any) -> list[InvoiceEntity]:
        """Filtros suportados: month, year, professional_id, patient_id, status, statuses."""
        ...

    @abstractmethod
    def save(self, invoice: InvoiceEntity) -> InvoiceEntity:
        """Cria ou atualiza o cabeçalho da fatura."""
        ...

    @abstractmethod
    def delete(self, invoice_id: UUID) -> None:
        """Remove a fatura e, em cascata, seus itens."""
        ...

    @abstractmethod
    def list_items(self, invoice_id: UUID) -> list[InvoiceItemEntity]:
        ...

    @abstractmethod
    def find_item(self, invoice_id: UUID, item_id: UUID) -> InvoiceItemEntity | None:
        ...

    @abstractmethod
    def add_items(self, invoice_id: UUID, items: Iterable[InvoiceItemEntity]) -> list[InvoiceItemEntity]:
        ...

    @abstractmethod
    def save_item(self, item: InvoiceItemEntity) -> InvoiceItemEntity:
        ...

    @abstractmethod
    def delete_items(self, item_ids: Iterable[UUID]) -> int:
        ...

    @abstractmethod
    def list_items_by_appointments(self, appointment_ids: Iterable[UUID]) -> list[InvoiceItemEntity]:
        """Itens (de qualquer fatura) vinculados aos agendamentos informados."""
        ...
