"""
Accounts Service Layer.

Architecture
------------
- ``UserDirectory``              — read-only lookups the complaint engine
                                   uses to resolve and vet assignees.
- ``UserAdministrationService``  — admin activation / deactivation of
                                   accounts, audited with the target user,
                                   and the officer roster for supervisors.
"""

from __future__ import annotations

import datetime
import logging
from typing import Callable

from django.contrib.auth import get_user_model
from django.db.models import QuerySet
from django.utils import timezone

from audit.models import AuditAction
from audit.services import AuditRecorder
from core.domain.access import coerce_choice, require_role
from core.domain.exceptions import InvalidAssignee, InvalidState, NotFound
from core.domain.transactions import atomic_unit, lock_for_update

from .models import Role

User = get_user_model()
logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  User Directory
# ═══════════════════════════════════════════════════════════════════


class UserDirectory:
    """Lookups of users by id and role."""

    def get(self, user_id: int) -> User:
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")

    def get_assignee(
        self,
        user_id: int,
        role: Role,
        *,
        require_active: bool = True,
    ) -> User:
        """
        Resolve a user that is about to receive an assignment.

        Raises
        ------
        NotFound
            If no such user exists.
        InvalidAssignee
            If the user does not hold ``role`` or (when
            ``require_active``) has been deactivated.
        """
        user = self.get(user_id)
        if user.role != role:
            raise InvalidAssignee(
                f"User {user.username} has role {user.role}; "
                f"expected {role}."
            )
        if require_active and not user.is_active:
            raise InvalidAssignee(f"User {user.username} is deactivated.")
        return user

    def active_with_role(self, role: Role) -> QuerySet[User]:
        role = coerce_choice(Role, role, field="role")
        return User.objects.filter(role=role, is_active=True).order_by("id")

    def first_available_supervisor(self) -> User | None:
        return self.active_with_role(Role.SUPERVISOR).first()


# ═══════════════════════════════════════════════════════════════════
#  User Administration
# ═══════════════════════════════════════════════════════════════════


class UserAdministrationService:
    """
    Account management.  Everything is admin-only except the officer
    roster, which supervisors also need to pick an assignee.

    Activating or deactivating a user writes an audit entry whose
    ``target_user`` is the affected account.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime.datetime] | None = None,
        audit: AuditRecorder | None = None,
    ) -> None:
        self.clock = clock or timezone.now
        self.audit = audit or AuditRecorder(clock=self.clock)
        self.directory = UserDirectory()

    def list_users(
        self,
        requesting_user: User,
        *,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> QuerySet[User]:
        require_role(requesting_user, Role.ADMIN)
        qs = User.objects.all().order_by("id")
        if role:
            qs = qs.filter(role=coerce_choice(Role, role, field="role"))
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        return qs

    def list_available_officers(self, requesting_user: User) -> QuerySet[User]:
        """
        Active officers, ordered by name, for supervisors and admins
        picking an assignee.
        """
        require_role(requesting_user, Role.SUPERVISOR, Role.ADMIN)
        return self.directory.active_with_role(Role.OFFICER).order_by(
            "first_name", "last_name", "username",
        )

    def get_user(self, user_id: int, requesting_user: User) -> User:
        require_role(requesting_user, Role.ADMIN)
        return self.directory.get(user_id)

    def set_active(
        self,
        user_id: int,
        active: bool,
        requesting_user: User,
        reason: str = "",
    ) -> User:
        """
        Activate or deactivate ``user_id``.

        Raises
        ------
        Unauthorized
            If the requesting user is not an admin.
        NotFound
            If the target user does not exist.
        InvalidState
            If an admin tries to deactivate their own account.
        """
        actor_role = require_role(requesting_user, Role.ADMIN)

        with atomic_unit():
            target = lock_for_update(User, user_id)
            if not active and target.pk == requesting_user.pk:
                raise InvalidState("You cannot deactivate your own account.")

            old_state = "ACTIVE" if target.is_active else "INACTIVE"
            target.is_active = active
            target.save(update_fields=["is_active"])
            new_state = "ACTIVE" if active else "INACTIVE"

            self.audit.record(
                action=AuditAction.USER_ACTIVATE if active else AuditAction.USER_DEACTIVATE,
                actor=requesting_user,
                actor_role=actor_role,
                target_user=target,
                old_status=old_state,
                new_status=new_state,
                remarks=reason or f"User {target.username} set to {new_state.lower()}",
            )

        logger.info(
            "User %s (pk=%d) %s → %s by %s",
            target.username, target.pk, old_state, new_state, requesting_user,
        )
        return target
