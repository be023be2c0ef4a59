from contextlib import contextmanager

import structlog
from django.db import connections, transaction

logger = structlog.get_logger(__name__)


@contextmanager
def atomic_with_timeout(timeout_ms: int | None = None, using: str = "default"):
    """
    transaction.atomic() com `statement_timeout` local à transação (PostgreSQL).
    Em outros bancos o timeout é ignorado.
    """
    with transaction.atomic(using=using):
        connection = connections[using]
        if timeout_ms and connection.vendor == "postgresql":
            with connection.cursor() as cursor:
                cursor.execute(f"SET LOCAL statement_timeout = {int(timeout_ms)}")
            logger.debug("db.statement_timeout_set", timeout_ms=int(timeout_ms))
        yield
