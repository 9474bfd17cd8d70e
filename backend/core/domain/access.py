"""
core.domain.access — Role guards and role-scoped queryset selectors.

Roles are a closed enumeration stored on the user (``accounts.Role``).
Every value that arrives from outside the service layer is coerced into
its enumeration exactly once, here, so the rest of the domain only ever
handles enum members.

Usage in an app's service layer::

    from core.domain.access import apply_role_scope, require_role

    COMPLAINT_SCOPE_RULES = {
        Role.ADMIN:      lambda qs, u: qs,
        Role.SUPERVISOR: lambda qs, u: qs.filter(assigned_supervisor=u),
        Role.CITIZEN:    lambda qs, u: qs.filter(reporter=u),
    }

    role = require_role(user, Role.ADMIN, Role.SUPERVISOR)
    qs = apply_role_scope(Complaint.objects.all(), user,
                          scope_rules=COMPLAINT_SCOPE_RULES)
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from django.db.models import QuerySet

from core.domain.exceptions import Unauthorized, ValidationError

if TYPE_CHECKING:
    from accounts.models import Role, User

E = TypeVar("E", bound=Enum)

# Takes (queryset, user) and returns a filtered queryset.
ScopeFilter = Callable[[QuerySet, "User"], QuerySet]


def coerce_choice(choices: type[E], value: Any, *, field: str) -> E:
    """
    Convert a raw value into a member of the ``choices`` enumeration.

    Raises:
        ValidationError: naming every legal value when ``value`` is not
            a member.
    """
    if isinstance(value, choices):
        return value
    try:
        return choices(value)
    except ValueError:
        legal = ", ".join(str(member.value) for member in choices)
        raise ValidationError(
            f"Invalid {field} '{value}'. Expected one of: {legal}.",
            field=field,
        )


def role_of(user: User) -> Role:
    """Return the user's role as a ``Role`` member."""
    from accounts.models import Role

    return coerce_choice(Role, user.role, field="role")


def require_role(user: User, *allowed_roles: Role, message: str = "") -> Role:
    """
    Guard that raises ``Unauthorized`` if the user's role is not among
    ``allowed_roles``.  Returns the user's role on success.
    """
    role = role_of(user)
    if role not in allowed_roles:
        raise Unauthorized(
            message
            or (
                f"Role {role} is not authorized for this action. "
                f"Authorized roles: {', '.join(allowed_roles)}."
            )
        )
    return role


def apply_role_scope(
    queryset: QuerySet,
    user: User,
    *,
    scope_rules: dict[Role, ScopeFilter],
) -> QuerySet:
    """
    Filter ``queryset`` with the rule registered for the user's role.

    Roles without a rule see nothing.
    """
    filter_fn = scope_rules.get(role_of(user))
    if filter_fn is None:
        return queryset.none()
    return filter_fn(queryset, user)
