"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF exception handler for the domain exceptions.
transactions       Helpers for ``transaction.atomic`` + ``select_for_update``.
access             Enum coercion, role guards and role-scoped selectors.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.transactions import atomic_unit, lock_for_update
    from core.domain.access import require_role
"""
