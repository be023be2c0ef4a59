import logging
import os
import sys

import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder

SERVICE_NAME = "clinic_billing"

# loggers de terceiros que poluem o console em DEBUG
NOISY_LOGGERS = {
    "django.db.backends": "WARNING",
    "django.utils.autoreload": "WARNING",
    "celery.worker.strategy": "INFO",
    "amqp": "WARNING",
}


def _add_service(_, __, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,  # request_id / method / path do middleware
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service,
    ]


def _renderer(json_logs: bool):
    if json_logs:
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Liga structlog à árvore do `logging` da stdlib.

    Eventos do structlog e de bibliotecas (Django, Celery) passam pelos mesmos
    processors e saem em um único handler no stdout: JSON em produção
    (`JSON_LOGS=1`) e console colorido no desenvolvimento.
    Chamar antes de `django.setup()`.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if json_logs is None:
        json_logs = bool(os.getenv("JSON_LOGS", ""))

    shared = _shared_processors()
    structlog.configure(
        processors=[
            *shared,
            CallsiteParameterAdder([CallsiteParameter.MODULE, CallsiteParameter.LINENO]),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=_renderer(json_logs),
        foreign_pre_chain=shared,
    ))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)

    logging.captureWarnings(True)
