from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from clinic_billing.core.domain.entities.enums import MemberRole
from plugins.django_interface.models import Clinic, ClinicMember, ProfessionalProfile


class Command(BaseCommand):
    """
    Cria ou atualiza uma clínica com um usuário ADMIN vinculado.
    Idempotente: pode ser executado várias vezes com o mesmo slug/usuário.
    """
    help = "Cria ou atualiza uma clínica e seu usuário administrador."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--slug", type=str, required=True, help="Identificador único da clínica.")
        parser.add_argument("--name", type=str, required=True, help="Nome da clínica.")
        parser.add_argument("--username", type=str, required=True, help="Login do administrador.")
        parser.add_argument("--password", type=str, required=True, help="Senha do administrador.")
        parser.add_argument("--timezone", type=str, default="America/Sao_Paulo")
        parser.add_argument("--tax", type=Decimal, default=Decimal("0"), help="Percentual de imposto da clínica.")
        parser.add_argument("--professional-name", type=str, default=None,
                            help="Cria também um perfil profissional para o administrador.")

    @transaction.atomic
    def handle(self, *args: Any, **opt: Any) -> None:
        self.stdout.write(self.style.NOTICE("--- Iniciando seed da clínica ---"))

        clinic, created = Clinic.objects.update_or_create(
            slug=opt["slug"],
            defaults={"name": opt["name"], "timezone": opt["timezone"], "tax_percentage": opt["tax"]},
        )

        user, _ = get_user_model().objects.get_or_create(username=opt["username"])
        user.set_password(opt["password"])
        user.save()

        professional = None
        if opt["professional_name"]:
            professional, _ = ProfessionalProfile.objects.get_or_create(
                clinic=clinic, name=opt["professional_name"],
            )

        ClinicMember.objects.update_or_create(
            user=user,
            defaults={"clinic": clinic, "role": MemberRole.ADMIN.value, "professional_profile": professional},
        )
        verb = "criada" if created else "atualizada"
        self.stdout.write(self.style.SUCCESS(f"✅ Clínica '{clinic.name}' {verb}. ID: {clinic.id}"))
