from abc import ABC, abstractmethod
from uuid import UUID

from clinic_billing.core.domain.entities.recurrence_entity import AppointmentRecurrenceEntity


class RecurrenceRepository(ABC):
    @abstractmethod
    def find_by_id(self, recurrence_id: UUID) -> AppointmentRecurrenceEntity | None:
        """Recupera uma regra de recorrência pelo ID."""
        ...

    @abstractmethod
    def save(self, recurrence: AppointmentRecurrenceEntity) -> AppointmentRecurrenceEntity:
        """Cria ou atualiza a regra."""
        ...

    @abstractmethod
    def list_active_indefinite(self) -> list[AppointmentRecurrenceEntity]:
        """Recorrências ativas sem data final, de clínicas ativas."""
        ...

    @abstractmethod
    def list_active_for_patients(self, patient_ids: list[UUID]) -> list[AppointmentRecurrenceEntity]:
        """Recorrências ativas dos pacientes (usadas na ordenação de faturas)."""
        ...
