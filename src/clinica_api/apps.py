from django.apps import AppConfig


class ClinicaApiConfig(AppConfig):
    name = "clinica_api"
    verbose_name = "Clínica API"

    def ready(self):
        from django.conf import settings

        # ─── DI container ───────────────────────────────────────────
        from clinic_billing.adapters.config.composition_root import setup_di_container_from_settings

        setup_di_container_from_settings(settings)
