from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from clinic_billing.core.domain.entities.clinic_entity import ClinicEntity
from clinic_billing.core.domain.entities.member_entity import ClinicMemberEntity
from clinic_billing.core.domain.entities.professional_entity import ProfessionalProfileEntity
from clinic_billing.core.domain.repositories.clinic_repository import ClinicRepository, ProfessionalRepository
from plugins.django_interface.models import Clinic as ClinicModel
from plugins.django_interface.models import ClinicMember as ClinicMemberModel
from plugins.django_interface.models import ProfessionalProfile as ProfessionalProfileModel


class ClinicRepoImpl(ClinicRepository):
    def find_by_id(self, clinic_id: UUID) -> ClinicEntity | None:
        model = ClinicModel.objects.filter(id=clinic_id).first()
        return ClinicEntity.from_model(model) if model else None

    def find_member_by_user(self, user_id: int) -> ClinicMemberEntity | None:
        model = ClinicMemberModel.objects.filter(user_id=user_id).first()
        return ClinicMemberEntity.from_model(model) if model else None


class ProfessionalRepoImpl(ProfessionalRepository):
    def find_by_id(self, professional_id: UUID) -> ProfessionalProfileEntity | None:
        model = ProfessionalProfileModel.objects.filter(id=professional_id).first()
        return ProfessionalProfileEntity.from_model(model) if model else None

    def find_many(self, professional_ids: Iterable[UUID]) -> dict[UUID, ProfessionalProfileEntity]:
        return {
            m.id: ProfessionalProfileEntity.from_model(m)
            for m in ProfessionalProfileModel.objects.filter(id__in=list(professional_ids))
        }

    def list_for_clinic(self, clinic_id: UUID) -> list[ProfessionalProfileEntity]:
        return [
            ProfessionalProfileEntity.from_model(m)
            for m in ProfessionalProfileModel.objects.filter(clinic_id=clinic_id, is_active=True)
        ]
