from functools import wraps

import structlog
from rest_framework import status
from rest_framework.response import Response

from clinic_billing.core.domain.events.exceptions import (
    BillingConflictError,
    BillingValidationError,
    NotFoundError,
)

log = structlog.get_logger(__name__)

# exceção de domínio → status HTTP (ordem importa: subclasses antes)
ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (BillingConflictError, status.HTTP_409_CONFLICT),
    (BillingValidationError, status.HTTP_400_BAD_REQUEST),
)


def error_response(exc: Exception) -> Response | None:
    for exc_type, http_status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return Response({"error": str(exc)}, status=http_status)
    return None


def track_http(view_name):
    """Loga a chamada e traduz exceções de domínio em respostas `{"error": ...}`."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(self, request, *args, **kwargs):
            try:
                return fn(self, request, *args, **kwargs)
            except (NotFoundError, BillingConflictError, BillingValidationError) as exc:
                log.info("http.domain_error", view=view_name, error=type(exc).__name__, detail=str(exc))
                return error_response(exc)
        return wrapper
    return decorator
