"""
Audit app Service Layer.

``AuditRecorder`` is the only writer of ``AuditLogEntry`` rows and the
single read path for the audit trail.

Write policy
------------
* Manual actions call ``record()`` inside the caller's transaction.  A
  failed write propagates and rolls the business mutation back, so a
  manual change is never persisted without its audit row.
* Sweep escalations pass ``best_effort=True``: the write runs in a
  savepoint and a storage failure is logged while the escalation itself
  is kept.

Read policy
-----------
``query()`` degrades to an empty list when storage fails; it is the one
read path in the system allowed to absorb errors.
"""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, Callable

from django.db import DatabaseError
from django.utils import timezone

from accounts.models import Role
from core.domain.access import coerce_choice, require_role
from core.domain.exceptions import ValidationError
from core.domain.transactions import run_best_effort

from .models import AuditAction, AuditLogEntry

if TYPE_CHECKING:
    from accounts.models import User
    from complaints.models import Complaint

logger = logging.getLogger(__name__)

#: Default and maximum page size of an audit-trail query.
DEFAULT_QUERY_LIMIT = 50
MAX_QUERY_LIMIT = 500


class AuditRecorder:
    """
    Append and query immutable audit entries.

    Parameters
    ----------
    clock : callable, optional
        Returns the current aware ``datetime``; defaults to
        ``django.utils.timezone.now``.  Every entry's ``created_at``
        comes from it.
    """

    def __init__(self, *, clock: Callable[[], datetime.datetime] | None = None) -> None:
        self.clock = clock or timezone.now

    def record(
        self,
        *,
        action: AuditAction,
        actor: User | None,
        actor_role: Role | str = "",
        complaint: Complaint | None = None,
        target_user: User | None = None,
        old_status: str = "",
        new_status: str = "",
        remarks: str = "",
        old_escalation_level: int | None = None,
        new_escalation_level: int | None = None,
        best_effort: bool = False,
    ) -> AuditLogEntry | None:
        """
        Append one audit entry.

        Returns
        -------
        AuditLogEntry or None
            ``None`` only when ``best_effort`` is set and the write failed.

        Raises
        ------
        django.db.DatabaseError
            When ``best_effort`` is false and the write failed.
        """
        fields: dict[str, Any] = {
            "action": action,
            "actor": actor,
            "actor_role": actor_role,
            "complaint": complaint,
            "target_user": target_user,
            "old_status": old_status,
            "new_status": new_status,
            "remarks": remarks,
            "old_escalation_level": old_escalation_level,
            "new_escalation_level": new_escalation_level,
            "created_at": self.clock(),
        }
        if best_effort:
            return run_best_effort(
                AuditLogEntry.objects.create,
                label=f"Audit write [{action}]",
                **fields,
            )
        return AuditLogEntry.objects.create(**fields)

    def query(
        self,
        *,
        actor_id: int | None = None,
        complaint_id: int | None = None,
        role: Role | str | None = None,
        action: AuditAction | str | None = None,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> list[AuditLogEntry]:
        """
        Return matching entries, newest first.

        Parameters
        ----------
        actor_id, complaint_id : int, optional
            Exact-match filters.
        role, action : str, optional
            Must be members of ``Role`` / ``AuditAction``.
        start, end : datetime, optional
            Inclusive bounds on ``created_at``.
        limit : int
            Maximum number of entries (1 to ``MAX_QUERY_LIMIT``).

        Raises
        ------
        ValidationError
            On an unknown role/action or a non-positive limit.
        """
        if limit < 1:
            raise ValidationError("limit must be a positive integer.", field="limit")
        limit = min(limit, MAX_QUERY_LIMIT)

        qs = AuditLogEntry.objects.select_related("actor", "complaint", "target_user")
        if actor_id is not None:
            qs = qs.filter(actor_id=actor_id)
        if complaint_id is not None:
            qs = qs.filter(complaint_id=complaint_id)
        if role:
            qs = qs.filter(actor_role=coerce_choice(Role, role, field="role"))
        if action:
            qs = qs.filter(action=coerce_choice(AuditAction, action, field="action"))
        if start is not None:
            qs = qs.filter(created_at__gte=start)
        if end is not None:
            qs = qs.filter(created_at__lte=end)

        try:
            return list(qs.order_by("-created_at", "-id")[:limit])
        except DatabaseError:
            logger.exception("Audit trail query failed; returning an empty trail")
            return []

    def trail_for(self, requesting_user: User, **filters: Any) -> list[AuditLogEntry]:
        """Admin-only entry point to ``query()``."""
        require_role(requesting_user, Role.ADMIN)
        return self.query(**filters)
