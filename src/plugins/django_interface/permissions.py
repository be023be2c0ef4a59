from __future__ import annotations

import uuid

from rest_framework.permissions import BasePermission

from clinic_billing.core.domain.entities.member_entity import ClinicMemberEntity
from clinic_billing.core.domain.events.exceptions import InvoiceValidationError


def _clinic_member(request) -> ClinicMemberEntity | None:
    if not hasattr(request, "clinic_member"):
        from clinic_billing.adapters.config.composition_root import container

        user = request.user
        member = None
        if user and user.is_authenticated:
            member = container.clinic_repo().find_member_by_user(user.id)
        request.clinic_member = member
    return request.clinic_member


class IsClinicMember(BasePermission):
    """Permite acesso apenas a usuários vinculados a uma clínica (anexa `request.clinic_member`)."""

    def has_permission(self, request, view):
        return _clinic_member(request) is not None


class IsClinicAdmin(BasePermission):
    """Permite acesso apenas a membros com papel ADMIN."""

    def has_permission(self, request, view):
        member = _clinic_member(request)
        return bool(member and member.is_admin)


def professional_scope(member: ClinicMemberEntity, requested: uuid.UUID | None) -> uuid.UUID | None:
    """
    ADMIN pode escolher qualquer profissional (ou nenhum); os demais ficam
    restritos ao próprio perfil profissional.
    """
    if member.is_admin:
        return requested
    if member.professional_profile_id is None:
        raise InvoiceValidationError("Usuário sem perfil profissional vinculado")
    return member.professional_profile_id
