"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  The global DRF exception handler in
``core.domain.exception_handler`` maps them to HTTP responses.

Mapping cheatsheet
------------------
┌───────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception      │ Meaning                      │ Code │
├───────────────────────┼──────────────────────────────┼──────┤
│ DomainError           │ generic business-rule error  │ 400  │
│ ValidationError       │ malformed / missing input    │ 400  │
│ InvalidTransition     │ target not allowed from here │ 400  │
│ InvalidAssignee       │ wrong role / inactive user   │ 400  │
│ Unauthorized          │ role may not act from here   │ 403  │
│ NotFound              │ missing or out of scope      │ 404  │
│ InvalidState          │ operation precondition fails │ 409  │
│ NoSupervisorAvailable │ no verifier can be assigned  │ 409  │
│ InfrastructureError   │ storage failure (non-domain) │ 503  │
└───────────────────────┴──────────────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import InvalidState

    if complaint.status == ComplaintStatus.RESOLVED:
        raise InvalidState("Cannot reassign a resolved complaint.")
"""

from __future__ import annotations

from typing import Iterable


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(DomainError):
    """
    Input is missing, empty, or outside a closed enumeration.

    Maps to HTTP 400.
    """

    def __init__(
        self,
        message: str = "Invalid input.",
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field


class Unauthorized(DomainError):
    """
    The acting role is not allowed to perform this operation.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting user given their ownership / assignment scope).

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class InvalidAssignee(DomainError):
    """
    The user chosen for an assignment exists but has the wrong role or
    has been deactivated.

    Maps to HTTP 400.
    """

    def __init__(self, message: str = "The selected user cannot be assigned.") -> None:
        super().__init__(message)


class InvalidTransition(DomainError):
    """
    A state-machine transition that is not allowed from the current status.

    The message always names the legal targets so the caller can correct
    the request.  Maps to HTTP 400.

    Example::

        raise InvalidTransition(
            current="WITHDRAWN",
            target="ASSIGNED",
            allowed=[],
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        allowed: Iterable[str] | None = None,
        reason: str | None = None,
    ) -> None:
        allowed = tuple(allowed) if allowed is not None else None
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from {current} to {target}")
            message = " ".join(parts) + "."
            if allowed is not None:
                message += (
                    f" Allowed transitions: {', '.join(allowed) or 'none'}."
                )
            if reason:
                message += f" {reason}"
        super().__init__(message)
        self.current = current
        self.target = target
        self.allowed = allowed
        self.reason = reason


class InvalidState(DomainError):
    """
    The operation's precondition on the resource's current state does
    not hold (e.g. reassigning a resolved complaint, submitting a
    resolution without an image).

    Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class NoSupervisorAvailable(InvalidState):
    """
    A resolution was submitted on a complaint without a supervisor and
    no active supervisor exists to verify it.

    Maps to HTTP 409.
    """

    def __init__(self, message: str = "No supervisor is available to verify this complaint.") -> None:
        super().__init__(message)


class InfrastructureError(Exception):
    """
    The storage layer failed.  Not a business-rule violation, so it does
    not derive from ``DomainError``.

    Maps to HTTP 503.
    """

    def __init__(self, message: str = "A storage error occurred.") -> None:
        self.message = message
        super().__init__(self.message)
