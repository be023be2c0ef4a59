from __future__ import annotations

import uuid
from dataclasses import dataclass

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.entities.enums import MemberRole


@dataclass(slots=True)
class ClinicMemberEntity(EntityMixin):
    id: uuid.UUID
    user_id: int
    clinic_id: uuid.UUID
    role: str = MemberRole.PROFESSIONAL.value
    professional_profile_id: uuid.UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN.value
