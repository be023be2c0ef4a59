from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import UUID

from clinic_billing.core.domain.entities.clinic_entity import ClinicEntity
from clinic_billing.core.domain.entities.member_entity import ClinicMemberEntity
from clinic_billing.core.domain.entities.professional_entity import ProfessionalProfileEntity


class ClinicRepository(ABC):
    @abstractmethod
    def find_by_id(self, clinic_id: UUID) -> ClinicEntity | None:
        ...

    @abstractmethod
    def find_member_by_user(self, user_id: int) -> ClinicMemberEntity | None:
        """Vínculo do usuário autenticado com a clínica."""
        ...


class ProfessionalRepository(ABC):
    @abstractmethod
    def find_by_id(self, professional_id: UUID) -> ProfessionalProfileEntity | None:
        ...

    @abstractmethod
    def find_many(self, professional_ids: Iterable[UUID]) -> dict[UUID, ProfessionalProfileEntity]:
        ...

    @abstractmethod
    def list_for_clinic(self, clinic_id: UUID) -> list[ProfessionalProfileEntity]:
        ...
