import os

from celery import Celery
from celery.signals import setup_logging

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("clinica_api")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


@setup_logging.connect
def _configure_worker_logging(**_kwargs):
    # impede o Celery de trocar os handlers do root logger
    from config.structlog_config import configure_logging

    configure_logging()
