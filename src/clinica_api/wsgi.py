import os

from config.structlog_config import configure_logging

configure_logging()
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

from django.core.wsgi import get_wsgi_application  # noqa: E402

# O DI container é montado em ClinicaApiConfig.ready()
application = get_wsgi_application()
