from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from clinic_billing.core.domain.entities.patient_entity import PatientEntity


class PatientRepository(ABC):
    @abstractmethod
    def find_by_id(self, patient_id: UUID) -> PatientEntity | None:
        ...

    @abstractmethod
    def find_many(self, patient_ids: Iterable[UUID]) -> dict[UUID, PatientEntity]:
        """Carrega vários pacientes de uma vez, indexados por ID."""
        ...

    @abstractmethod
    def touch_last_visit(self, patient_id: UUID, at: datetime) -> None:
        ...
