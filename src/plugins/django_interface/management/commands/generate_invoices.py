import uuid

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from clinic_billing.adapters.config.composition_root import setup_di_container_from_settings
from clinic_billing.core.application.commands.invoice_commands import GenerateMonthlyInvoicesCommand
from clinic_billing.core.domain.events.exceptions import BillingError


class Command(BaseCommand):
    help = "Gera/regenera as faturas mensais de uma clínica (idempotente)"

    def add_arguments(self, parser):
        parser.add_argument("--clinic-id", required=True, type=uuid.UUID)
        parser.add_argument("--month", required=True, type=int)
        parser.add_argument("--year", required=True, type=int)
        parser.add_argument("--professional-id", type=uuid.UUID, default=None)

    def handle(self, *a, **opts):
        container = setup_di_container_from_settings(settings)
        bus = container.command_bus()
        try:
            out = bus.dispatch(
                GenerateMonthlyInvoicesCommand(
                    clinic_id=opts["clinic_id"],
                    month=opts["month"],
                    year=opts["year"],
                    professional_profile_id=opts["professional_id"],
                )
            )
        except BillingError as exc:
            raise CommandError(str(exc)) from exc
        self.stdout.write(self.style.SUCCESS(
            f"Faturas: {out.generated} geradas, {out.updated} atualizadas, {out.skipped} ignoradas"
        ))
