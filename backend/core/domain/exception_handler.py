"""
core.domain.exception_handler — DRF-compatible global exception handler.

Maps domain exceptions from ``core.domain.exceptions`` to proper
DRF ``Response`` objects so that views don't need per-endpoint
try/except boilerplate.

Register in ``settings.py``::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    DomainError,
    InfrastructureError,
    InvalidAssignee,
    InvalidState,
    InvalidTransition,
    NoSupervisorAvailable,
    NotFound,
    Unauthorized,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Domain exception → HTTP status code
_STATUS_MAP: dict[type, int] = {
    Unauthorized:          403,
    NotFound:              404,
    NoSupervisorAvailable: 409,
    InvalidState:          409,
    InvalidTransition:     400,
    InvalidAssignee:       400,
    ValidationError:       400,
    DomainError:           400,  # catch-all base class last
}


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler that also handles ``core.domain.exceptions``.

    The default DRF handler is called first.  If it returns ``None``
    (meaning DRF doesn't recognise the exception), we check whether
    it's one of our domain exceptions and return an appropriate response.
    """
    # Let DRF handle its own exceptions (ValidationError, AuthN, etc.)
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, InfrastructureError):
        logger.error(
            "Infrastructure failure in %s: %s",
            context.get("view", "unknown"),
            exc,
        )
        return Response(
            {"detail": "The service is temporarily unavailable.", "code": "infrastructure_error"},
            status=503,
        )

    # Check domain exceptions (order matters — most specific first)
    for exc_class, status_code in _STATUS_MAP.items():
        if isinstance(exc, exc_class):
            logger.warning(
                "Domain exception [%s] in %s: %s",
                exc_class.__name__,
                context.get("view", "unknown"),
                exc,
            )
            payload = {"detail": str(exc), "code": type(exc).__name__}
            if isinstance(exc, InvalidTransition) and exc.allowed is not None:
                payload["allowed"] = list(exc.allowed)
            return Response(payload, status=status_code)

    # Not our exception — let it propagate
    return None
