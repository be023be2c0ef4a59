from datetime import date

from django.conf import settings
from django.core.management.base import BaseCommand

from clinic_billing.adapters.config.composition_root import setup_di_container_from_settings
from clinic_billing.core.application.commands.appointment_commands import ExtendRecurrencesCommand


class Command(BaseCommand):
    help = "Estende a agenda das recorrências sem data final que estão perto do fim"

    def add_arguments(self, parser):
        parser.add_argument("--today", type=date.fromisoformat, default=None,
                            help="Data de referência (YYYY-MM-DD); padrão: hoje")

    def handle(self, *a, **opts):
        container = setup_di_container_from_settings(settings)
        out = container.command_bus().dispatch(ExtendRecurrencesCommand(today=opts["today"]))
        for error in out.errors:
            self.stderr.write(self.style.WARNING(error))
        self.stdout.write(self.style.SUCCESS(
            f"Recorrências: {out.processed} avaliadas, {out.extended} estendidas, {out.created} agendamentos criados"
        ))
