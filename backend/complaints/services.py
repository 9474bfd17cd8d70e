"""
Complaints app Service Layer.

This module is the **single source of truth** for all business logic
in the ``complaints`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``ComplaintLifecycleService`` — every mutation of a complaint: filing,
  assignment, reassignment, escalation, admin overrides, officer
  submission, supervisor review, withdrawal, citizen edits and generic
  updates.
- ``EscalationSweeper``         — periodic batch escalation of overdue
  complaints, one complaint per atomic unit.
- ``ComplaintQueryService``     — role-scoped reads: listing, detail with
  SLA status, timeline, allowed next states, text search.

Mutation contract
-----------------
Each public mutation of ``ComplaintLifecycleService`` runs as one atomic
unit on one complaint row:

  1. lock the row (``select_for_update``) and validate, either through
     ``complaints.transitions.validate_transition`` or the operation's
     own source-state guard;
  2. apply the mutation (status, assignees, SLA, remarks, images);
  3. append exactly one ``ComplaintStatusHistory`` row when the
     operation enters a status (assignments always do);
  4. append exactly one ``AuditLogEntry``.

A failure at any step rolls the whole unit back.  Storage failures
surface as ``InfrastructureError``.

Operations that bypass the transition table, with their guards
--------------------------------------------------------------
  assign_to_supervisor          any state except WITHDRAWN → ASSIGNED
  assign_to_officer_directly    any state except WITHDRAWN → IN_PROGRESS
  reassign                      any state except RESOLVED / WITHDRAWN
  supervisor_reject             PENDING_VERIFICATION → IN_PROGRESS
  submit_resolution (resubmit)  PENDING_VERIFICATION → PENDING_VERIFICATION
  override FORCE_RESOLVE        any state → RESOLVED
  override FORCE_REJECT         any state → REJECTED
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.db.models import Q, QuerySet
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from accounts.models import Role
from accounts.services import UserDirectory
from audit.models import AuditAction
from audit.services import AuditRecorder
from core.domain.access import apply_role_scope, coerce_choice, require_role, role_of
from core.domain.exceptions import (
    InfrastructureError,
    InvalidState,
    NoSupervisorAvailable,
    NotFound,
    Unauthorized,
    ValidationError,
)
from core.domain.transactions import atomic_unit, lock_for_update

from .models import (
    Category,
    Complaint,
    ComplaintComment,
    ComplaintStatus,
    ComplaintStatusHistory,
    OverrideAction,
    Priority,
)
from .sla import ACTIVE_SLA_STATUSES, SlaCalculator, SlaSnapshot
from .transitions import allowed_transitions, validate_transition

User = get_user_model()
logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]

S = ComplaintStatus

#: Which complaints each role may see.
COMPLAINT_SCOPE_RULES = {
    Role.ADMIN: lambda qs, u: qs,
    Role.SUPERVISOR: lambda qs, u: qs.filter(assigned_supervisor=u),
    Role.OFFICER: lambda qs, u: qs.filter(assigned_officer=u),
    Role.CITIZEN: lambda qs, u: qs.filter(reporter=u),
}

#: Fields accepted by the generic update.
UPDATABLE_FIELDS = ("status", "remarks", "priority", "category", "due_by", "supervisor_image")

#: Fields a citizen may correct while the complaint is CREATED.
CITIZEN_EDITABLE_FIELDS = ("title", "description", "category", "area", "images")

#: Required when filing a complaint.
_FILING_FIELDS = ("title", "description", "category", "area")

_OVERRIDE_OUTCOMES: dict[OverrideAction, tuple[ComplaintStatus, AuditAction, str]] = {
    OverrideAction.REOPEN: (S.ASSIGNED, AuditAction.ADMIN_REOPEN, "REOPENED"),
    OverrideAction.FORCE_RESOLVE: (S.RESOLVED, AuditAction.ADMIN_FORCE_RESOLVE, "FORCE RESOLVED"),
    OverrideAction.FORCE_REJECT: (S.REJECTED, AuditAction.ADMIN_FORCE_REJECT, "FORCE REJECTED"),
}


# ── Small helpers ───────────────────────────────────────────────────

def _append_remark(existing: str, addition: str) -> str:
    if not addition:
        return existing
    return f"{existing}\n{addition}" if existing else addition


def _clean_images(images: Iterable[Any] | str | None) -> list[str]:
    if images is None:
        return []
    if isinstance(images, str):
        images = [images]
    return [str(ref).strip() for ref in images if ref and str(ref).strip()]


def _parse_due_by(value: Any) -> datetime.datetime:
    parsed = None
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = parse_datetime(value)
        except ValueError:
            parsed = None
    if parsed is None:
        raise ValidationError("due_by must be an ISO 8601 datetime.", field="due_by")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _fmt(moment: datetime.datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M")


# ═══════════════════════════════════════════════════════════════════
#  Lifecycle Engine
# ═══════════════════════════════════════════════════════════════════


class ComplaintLifecycleService:
    """
    Orchestrates every mutation of a single complaint.

    Parameters
    ----------
    clock : callable, optional
        Returns the current aware ``datetime``.  Defaults to
        ``django.utils.timezone.now``.  All SLA, history and audit
        timestamps come from it.
    sla : SlaCalculator, optional
        Defaults to a calculator built from ``settings.COMPLAINT_SLA``.
    audit : AuditRecorder, optional
        Defaults to a recorder sharing ``clock``.
    users : UserDirectory, optional
        Resolves and vets assignees.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        sla: SlaCalculator | None = None,
        audit: AuditRecorder | None = None,
        users: UserDirectory | None = None,
    ) -> None:
        self.clock = clock or timezone.now
        self.sla = sla or SlaCalculator()
        self.audit = audit or AuditRecorder(clock=self.clock)
        self.users = users or UserDirectory()

    # ── Internal steps ──────────────────────────────────────────────

    @staticmethod
    def _ensure_not_withdrawn(complaint: Complaint) -> None:
        if complaint.status == S.WITHDRAWN:
            raise InvalidState(
                f"Complaint #{complaint.pk} has been withdrawn; "
                f"no further changes are allowed."
            )

    @staticmethod
    def _not_yours(complaint_id: int) -> NotFound:
        return NotFound(f"Complaint with id {complaint_id} not found or not assigned to you.")

    def _ensure_verifier(self, complaint: Complaint) -> User | None:
        """
        Make sure a supervisor will verify the submission.

        Assigns the first active supervisor when none is set and returns
        it; returns ``None`` when a supervisor was already assigned.

        Raises
        ------
        NoSupervisorAvailable
            If no active supervisor exists.
        """
        if complaint.assigned_supervisor_id is not None:
            return None
        supervisor = self.users.first_available_supervisor()
        if supervisor is None:
            raise NoSupervisorAvailable(
                f"Complaint #{complaint.pk} has no supervisor and no active "
                f"supervisor is available to verify it."
            )
        complaint.assigned_supervisor = supervisor
        return supervisor

    def _commit(
        self,
        complaint: Complaint,
        *,
        actor: User | None,
        role: Role | str,
        action: AuditAction,
        old_status: str,
        now: datetime.datetime,
        history_remarks: str = "",
        audit_remarks: str = "",
        push_history: bool = True,
        **audit_fields: Any,
    ) -> Complaint:
        """Persist the mutated complaint, then its history row and audit row."""
        complaint.touch(now)
        complaint.save()
        if push_history:
            ComplaintStatusHistory.objects.create(
                complaint=complaint,
                status=complaint.status,
                changed_by=actor,
                role=role,
                remarks=history_remarks,
                changed_at=now,
            )
        self.audit.record(
            action=action,
            actor=actor,
            actor_role=role,
            complaint=complaint,
            old_status=old_status,
            new_status=complaint.status,
            remarks=audit_remarks,
            **audit_fields,
        )
        logger.info(
            "Complaint pk=%d [%s] %s → %s by %s",
            complaint.pk, action, old_status, complaint.status,
            actor if actor is not None else "system",
        )
        return complaint

    # ── Intake ──────────────────────────────────────────────────────

    def file_complaint(self, requesting_user: User, data: dict[str, Any]) -> Complaint:
        """
        File a new complaint on behalf of a citizen.

        Parameters
        ----------
        requesting_user : User
            Must be a citizen; becomes the reporter.
        data : dict
            ``title``, ``description``, ``category``, ``area`` (required)
            and optional ``images`` (list of image references).

        Returns
        -------
        Complaint
            The new complaint in CREATED with MEDIUM priority.

        Raises
        ------
        Unauthorized
            If the user is not a citizen.
        ValidationError
            On missing fields or an unknown category.
        """
        role = require_role(
            requesting_user, Role.CITIZEN,
            message="Only citizens can file complaints.",
        )
        missing = [name for name in _FILING_FIELDS if not str(data.get(name) or "").strip()]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}.",
                field=missing[0],
            )
        category = coerce_choice(Category, data["category"], field="category")

        with atomic_unit():
            now = self.clock()
            complaint = Complaint.objects.create(
                reporter=requesting_user,
                created_at=now,
                updated_at=now,
                title=str(data["title"]).strip(),
                description=str(data["description"]).strip(),
                category=category,
                area=str(data["area"]).strip(),
                citizen_images=_clean_images(data.get("images")),
                status=S.CREATED,
                priority=Priority.MEDIUM,
            )
            self.audit.record(
                action=AuditAction.CREATE,
                actor=requesting_user,
                actor_role=role,
                complaint=complaint,
                new_status=complaint.status,
                remarks=f"Complaint filed: {complaint.title}",
            )

        logger.info(
            "Complaint pk=%d filed by %s in %s (%s)",
            complaint.pk, requesting_user, complaint.area, complaint.category,
        )
        return complaint

    def add_comment(self, complaint_id: int, requesting_user: User, text: str) -> ComplaintComment:
        """Append a comment to the reporter's own complaint."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text cannot be empty.", field="text")

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            if complaint.reporter_id != requesting_user.pk:
                raise NotFound(f"Complaint with id {complaint_id} not found.")
            now = self.clock()
            complaint.touch(now)
            complaint.save(update_fields=["updated_at"])
            return ComplaintComment.objects.create(
                complaint=complaint,
                author=requesting_user,
                text=text,
                created_at=now,
            )

    # ── Admin: assignment ───────────────────────────────────────────

    def assign_to_supervisor(
        self,
        complaint_id: int,
        supervisor_id: int,
        requesting_user: User,
    ) -> Complaint:
        """
        Route a complaint to a supervisor.

        Status becomes ASSIGNED and the SLA clock restarts with the
        priority-based offset.

        Raises
        ------
        Unauthorized
            If the requesting user is not an admin.
        NotFound
            If the complaint or the supervisor does not exist.
        InvalidAssignee
            If the user is not an active supervisor.
        InvalidState
            If the complaint was withdrawn.
        """
        role = require_role(requesting_user, Role.ADMIN)

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            self._ensure_not_withdrawn(complaint)
            supervisor = self.users.get_assignee(supervisor_id, Role.SUPERVISOR)

            now = self.clock()
            old_status = complaint.status
            complaint.assigned_supervisor = supervisor
            complaint.status = S.ASSIGNED
            due = self.sla.start_clock(complaint, now)

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.ASSIGN_TO_SUPERVISOR,
                old_status=old_status,
                now=now,
                history_remarks=f"Assigned to supervisor: {supervisor.display_name}",
                audit_remarks=(
                    f"Admin assigned to supervisor {supervisor.display_name}. "
                    f"Due by: {_fmt(due)}"
                ),
            )

    def assign_to_officer_directly(
        self,
        complaint_id: int,
        officer_id: int,
        requesting_user: User,
    ) -> Complaint:
        """
        Skip the supervisor and hand the complaint straight to an officer.

        Status becomes IN_PROGRESS with the fixed officer SLA; any
        supervisor is cleared.
        """
        role = require_role(requesting_user, Role.ADMIN)

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            self._ensure_not_withdrawn(complaint)
            officer = self.users.get_assignee(officer_id, Role.OFFICER)

            now = self.clock()
            old_status = complaint.status
            complaint.assigned_officer = officer
            complaint.assigned_supervisor = None
            complaint.status = S.IN_PROGRESS
            due = self.sla.start_clock(complaint, now, direct_officer=True)

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.DIRECT_ASSIGN_TO_OFFICER,
                old_status=old_status,
                now=now,
                history_remarks=f"Directly assigned to officer: {officer.display_name}",
                audit_remarks=(
                    f"Admin directly assigned to officer {officer.display_name}. "
                    f"Due by: {_fmt(due)}"
                ),
            )

    def reassign(
        self,
        complaint_id: int,
        assignee_id: int,
        assignee_role: Role | str,
        requesting_user: User,
        reason: str = "",
    ) -> Complaint:
        """
        Move a complaint to a different supervisor or officer.

        SUPERVISOR: status ASSIGNED, officer cleared, priority-based SLA.
        OFFICER: status IN_PROGRESS, supervisor cleared, officer SLA.
        Either way the escalation level returns to 0.

        Raises
        ------
        ValidationError
            If ``assignee_role`` is not SUPERVISOR or OFFICER.
        InvalidState
            If the complaint is resolved or withdrawn.
        """
        role = require_role(requesting_user, Role.ADMIN)
        assignee_role = coerce_choice(Role, assignee_role, field="assignee_role")
        if assignee_role not in (Role.SUPERVISOR, Role.OFFICER):
            raise ValidationError(
                "Complaints can only be reassigned to a SUPERVISOR or an OFFICER.",
                field="assignee_role",
            )

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            if complaint.status == S.RESOLVED:
                raise InvalidState("Cannot reassign a resolved complaint.")
            self._ensure_not_withdrawn(complaint)
            assignee = self.users.get_assignee(assignee_id, assignee_role)

            now = self.clock()
            old_status = complaint.status
            previous = complaint.assigned_officer or complaint.assigned_supervisor
            if assignee_role == Role.SUPERVISOR:
                complaint.assigned_supervisor = assignee
                complaint.assigned_officer = None
                complaint.status = S.ASSIGNED
                due = self.sla.start_clock(complaint, now)
            else:
                complaint.assigned_officer = assignee
                complaint.assigned_supervisor = None
                complaint.status = S.IN_PROGRESS
                due = self.sla.start_clock(complaint, now, direct_officer=True)

            reason = (reason or "").strip() or "Admin decision"
            from_name = previous.display_name if previous is not None else "nobody"
            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.REASSIGN,
                old_status=old_status,
                now=now,
                history_remarks=(
                    f"Reassigned to {assignee_role.label.lower()}: {assignee.display_name}"
                ),
                audit_remarks=(
                    f"Reassigned from {from_name} to {assignee_role.label.lower()} "
                    f"{assignee.display_name}. Reason: {reason}. Due by: {_fmt(due)}"
                ),
            )

    # ── Admin: escalation & overrides ───────────────────────────────

    def escalate(
        self,
        complaint_id: int,
        requesting_user: User,
        reason: str = "",
        level: int = 1,
    ) -> Complaint:
        """
        Manually escalate by ``level`` steps.

        Priority becomes HIGH, or CRITICAL once the level reaches the
        escalation cap.  Status is unchanged, so no history row is added.
        """
        role = require_role(requesting_user, Role.ADMIN)
        if isinstance(level, bool) or not isinstance(level, int) or level < 1:
            raise ValidationError("Escalation level must be a positive integer.", field="level")

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            self._ensure_not_withdrawn(complaint)

            now = self.clock()
            old_level, new_level = self.sla.escalate(complaint, now, level)
            reason = (reason or "").strip() or "Manual escalation"

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.ESCALATE,
                old_status=complaint.status,
                now=now,
                push_history=False,
                audit_remarks=(
                    f"Escalated from level {old_level} to {new_level}; "
                    f"priority {complaint.priority}. Reason: {reason}"
                ),
                old_escalation_level=old_level,
                new_escalation_level=new_level,
            )

    def override(
        self,
        complaint_id: int,
        action: OverrideAction | str,
        requesting_user: User,
        reason: str = "",
    ) -> Complaint:
        """
        Admin escape hatch.

        REOPEN must be a legal transition to ASSIGNED.  FORCE_RESOLVE and
        FORCE_REJECT apply from any state and flag the complaint as
        admin-resolved / admin-rejected.  A dated marker is appended to
        the remarks.
        """
        role = require_role(requesting_user, Role.ADMIN)
        action = coerce_choice(OverrideAction, action, field="action")
        target, audit_action, marker = _OVERRIDE_OUTCOMES[action]
        reason = (reason or "").strip() or "No reason given"

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            now = self.clock()
            old_status = complaint.status

            if action == OverrideAction.REOPEN:
                validate_transition(old_status, target, role)
            elif action == OverrideAction.FORCE_RESOLVE:
                complaint.resolved_by_admin = True
                complaint.resolved_at = now
            else:
                complaint.rejected_by_admin = True

            complaint.status = target
            complaint.remarks = _append_remark(
                complaint.remarks,
                f"[{marker} BY ADMIN - {now:%Y-%m-%d}]: {reason}",
            )

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=audit_action,
                old_status=old_status,
                now=now,
                history_remarks=f"Admin {action.label.lower()}: {reason}",
                audit_remarks=(
                    f"Admin {action.label.lower()} ({old_status} → {target}): {reason}"
                ),
            )

    # ── Officer ─────────────────────────────────────────────────────

    def submit_resolution(
        self,
        complaint_id: int,
        requesting_user: User,
        images: Iterable[str] | str | None,
        remarks: str = "",
    ) -> Complaint:
        """
        Officer submits (or re-submits) work for verification.

        Parameters
        ----------
        images : list[str]
            At least one image reference; the first one is kept as the
            officer image.
        remarks : str, optional
            Appended to the complaint remarks, marked as a re-submission
            when the complaint has been pending verification before.

        Raises
        ------
        NotFound
            If the complaint is not assigned to this officer.
        InvalidState
            If the status is not IN_PROGRESS / PENDING_VERIFICATION, or no
            image was supplied.
        NoSupervisorAvailable
            If the complaint has no supervisor and none can be assigned.
        """
        role = require_role(requesting_user, Role.OFFICER)
        images = _clean_images(images)

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            if complaint.assigned_officer_id != requesting_user.pk:
                raise self._not_yours(complaint_id)
            if complaint.status not in (S.IN_PROGRESS, S.PENDING_VERIFICATION):
                raise InvalidState(
                    f"Cannot submit a resolution while the complaint is "
                    f"{complaint.status}. Allowed states: IN_PROGRESS, "
                    f"PENDING_VERIFICATION."
                )
            if not images:
                raise InvalidState("A resolution image is required.")

            old_status = complaint.status
            if old_status == S.IN_PROGRESS:
                validate_transition(old_status, S.PENDING_VERIFICATION, role)
            # Only submissions since the current assignment count.
            earlier = complaint.status_history.filter(status=S.PENDING_VERIFICATION)
            if complaint.sla_assigned_at is not None:
                earlier = earlier.filter(changed_at__gte=complaint.sla_assigned_at)
            resubmission = old_status == S.PENDING_VERIFICATION or earlier.exists()

            now = self.clock()
            verifier = self._ensure_verifier(complaint)
            complaint.officer_image = images[0]
            complaint.status = S.PENDING_VERIFICATION

            remarks = (remarks or "").strip()
            if remarks:
                label = "Re-submission" if resubmission else "Resolution submitted"
                complaint.remarks = _append_remark(
                    complaint.remarks, f"[{label} at {_fmt(now)}]: {remarks}",
                )

            if resubmission:
                history_remarks = "Re-submitted for verification"
                audit_remarks = "Officer re-submitted resolution after rejection"
            else:
                history_remarks = "Resolution submitted for verification"
                audit_remarks = "Officer submitted resolution for verification"
            if verifier is not None:
                audit_remarks += f"; supervisor {verifier.display_name} auto-assigned"

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.SUBMIT,
                old_status=old_status,
                now=now,
                history_remarks=history_remarks,
                audit_remarks=audit_remarks,
            )

    # ── Supervisor ──────────────────────────────────────────────────

    def _lock_for_review(self, complaint_id: int, supervisor: User) -> Complaint:
        complaint = lock_for_update(Complaint, complaint_id)
        if complaint.assigned_supervisor_id != supervisor.pk:
            raise self._not_yours(complaint_id)
        if complaint.status != S.PENDING_VERIFICATION:
            raise InvalidState(
                f"Complaint is {complaint.status}; only complaints pending "
                f"verification can be reviewed."
            )
        return complaint

    def supervisor_verify(
        self,
        complaint_id: int,
        requesting_user: User,
        remarks: str = "",
    ) -> Complaint:
        """Accept the officer's work: PENDING_VERIFICATION → RESOLVED."""
        role = require_role(requesting_user, Role.SUPERVISOR)

        with atomic_unit():
            complaint = self._lock_for_review(complaint_id, requesting_user)
            old_status = complaint.status
            validate_transition(old_status, S.RESOLVED, role)

            now = self.clock()
            complaint.status = S.RESOLVED
            complaint.resolved_at = now
            remarks = (remarks or "").strip()
            if remarks:
                complaint.remarks = _append_remark(
                    complaint.remarks, f"[Verified at {_fmt(now)}]: {remarks}",
                )

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.VERIFY,
                old_status=old_status,
                now=now,
                history_remarks=remarks or "Verified and marked as resolved by supervisor",
                audit_remarks="Supervisor verified the resolution",
            )

    def supervisor_reject(
        self,
        complaint_id: int,
        requesting_user: User,
        remarks: str = "",
    ) -> Complaint:
        """Send the work back for rework: PENDING_VERIFICATION → IN_PROGRESS."""
        role = require_role(requesting_user, Role.SUPERVISOR)

        with atomic_unit():
            complaint = self._lock_for_review(complaint_id, requesting_user)
            old_status = complaint.status

            now = self.clock()
            complaint.status = S.IN_PROGRESS
            remarks = (remarks or "").strip()
            if remarks:
                complaint.remarks = _append_remark(
                    complaint.remarks, f"[Sent back at {_fmt(now)}]: {remarks}",
                )

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.REJECT,
                old_status=old_status,
                now=now,
                history_remarks=remarks or "Rejected by supervisor, needs rework",
                audit_remarks="Supervisor rejected the resolution",
            )

    def supervisor_assign_officer(
        self,
        complaint_id: int,
        officer_id: int,
        requesting_user: User,
    ) -> Complaint:
        """
        Supervisor hands an assigned complaint to one of the officers.

        Allowed while ASSIGNED (starts the work) or IN_PROGRESS (swaps the
        officer).  The fixed officer SLA restarts.
        """
        role = require_role(requesting_user, Role.SUPERVISOR)

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            if complaint.assigned_supervisor_id != requesting_user.pk:
                raise self._not_yours(complaint_id)
            if complaint.status not in (S.ASSIGNED, S.IN_PROGRESS):
                raise InvalidState(
                    f"Cannot assign an officer while the complaint is "
                    f"{complaint.status}. Allowed states: ASSIGNED, IN_PROGRESS."
                )
            officer = self.users.get_assignee(officer_id, Role.OFFICER)

            old_status = complaint.status
            if old_status == S.ASSIGNED:
                validate_transition(old_status, S.IN_PROGRESS, role)

            now = self.clock()
            complaint.assigned_officer = officer
            complaint.status = S.IN_PROGRESS
            due = self.sla.start_clock(complaint, now, direct_officer=True)

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.ASSIGN,
                old_status=old_status,
                now=now,
                history_remarks=f"Assigned to officer: {officer.display_name}",
                audit_remarks=(
                    f"Supervisor assigned to officer {officer.display_name}. "
                    f"Due by: {_fmt(due)}"
                ),
            )

    # ── Citizen ─────────────────────────────────────────────────────

    def citizen_withdraw(self, complaint_id: int, requesting_user: User) -> Complaint:
        """
        Withdraw the citizen's own complaint while it is CREATED or
        ASSIGNED.  WITHDRAWN is terminal.
        """
        role = require_role(requesting_user, Role.CITIZEN)

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            if complaint.reporter_id != requesting_user.pk:
                raise NotFound(f"Complaint with id {complaint_id} not found.")
            if complaint.status not in (S.CREATED, S.ASSIGNED):
                raise InvalidState(
                    f"Complaint cannot be withdrawn while it is {complaint.status}. "
                    f"Withdrawal is only possible while CREATED or ASSIGNED."
                )
            old_status = complaint.status
            validate_transition(old_status, S.WITHDRAWN, role)

            now = self.clock()
            complaint.status = S.WITHDRAWN
            complaint.withdrawn_at = now

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.WITHDRAW,
                old_status=old_status,
                now=now,
                history_remarks="Withdrawn by citizen",
                audit_remarks="Citizen withdrew the complaint",
            )

    def edit_own_complaint(
        self,
        complaint_id: int,
        requesting_user: User,
        data: dict[str, Any],
    ) -> Complaint:
        """
        Citizen correction of their own complaint before it is routed.

        Only ``title``, ``description``, ``category``, ``area`` and
        ``images`` (replaces the citizen images) may change, and only
        while the complaint is CREATED.  The status never changes, so no
        history row is written; one UPDATE audit entry lists the edits.

        Raises
        ------
        NotFound
            If the complaint is not the citizen's own.
        InvalidState
            If the complaint has left CREATED.
        ValidationError
            On unknown fields, an empty patch, a blanked required field or
            an unknown category.
        """
        role = require_role(requesting_user, Role.CITIZEN)

        unknown = sorted(set(data) - set(CITIZEN_EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(unknown)}. "
                f"Editable fields: {', '.join(CITIZEN_EDITABLE_FIELDS)}.",
                field=unknown[0],
            )
        if not data:
            raise ValidationError("No changes supplied.")
        for name in _FILING_FIELDS:
            if name in data and not str(data[name] or "").strip():
                raise ValidationError(f"{name} cannot be blank.", field=name)
        category = (
            coerce_choice(Category, data["category"], field="category")
            if "category" in data else None
        )

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            if complaint.reporter_id != requesting_user.pk:
                raise NotFound(f"Complaint with id {complaint_id} not found.")
            if complaint.status != S.CREATED:
                raise InvalidState(
                    f"Complaint is {complaint.status}; it can only be edited "
                    f"while CREATED."
                )

            changes: list[str] = []
            for name in ("title", "description", "area"):
                if name in data:
                    value = str(data[name]).strip()
                    if value != getattr(complaint, name):
                        setattr(complaint, name, value)
                        changes.append(f"{name} updated")
            if category is not None and category != complaint.category:
                changes.append(f"category {complaint.category} → {category}")
                complaint.category = category
            if "images" in data:
                complaint.citizen_images = _clean_images(data["images"])
                changes.append("images replaced")

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.UPDATE,
                old_status=complaint.status,
                now=self.clock(),
                push_history=False,
                audit_remarks=(
                    f"Citizen edited complaint. "
                    f"Changes: {', '.join(changes) or 'none'}"
                ),
            )

    # ── Generic update ──────────────────────────────────────────────

    def update(
        self,
        complaint_id: int,
        patch: dict[str, Any],
        actor_role: Role | str,
        requesting_user: User,
    ) -> Complaint:
        """
        Admin / supervisor edit of a complaint.

        ``status`` is routed through the transition table; ``remarks``
        (appended), ``priority``, ``category``, ``due_by`` and
        ``supervisor_image`` are applied as given.  Moving to ASSIGNED
        restarts the SLA clock.  One UPDATE audit entry lists every
        applied change; a history row is written only if the status
        changed.

        Raises
        ------
        Unauthorized
            If ``actor_role`` is not the user's role, or is neither ADMIN
            nor SUPERVISOR, or the table denies the role.
        NotFound
            If a supervisor edits a complaint not assigned to them.
        ValidationError
            On unknown fields, an empty patch or invalid enum values.
        InvalidTransition
            If the requested status is not reachable.
        """
        role = coerce_choice(Role, actor_role, field="role")
        if role != role_of(requesting_user):
            raise Unauthorized(
                f"Acting role {role} does not match your role {requesting_user.role}."
            )
        if role not in (Role.ADMIN, Role.SUPERVISOR):
            raise Unauthorized("Only admins and supervisors can update complaints.")

        unknown = sorted(set(patch) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(unknown)}. "
                f"Updatable fields: {', '.join(UPDATABLE_FIELDS)}.",
                field=unknown[0],
            )
        if not patch:
            raise ValidationError("No changes supplied.")

        target_status = (
            coerce_choice(ComplaintStatus, patch["status"], field="status")
            if patch.get("status") else None
        )
        priority = (
            coerce_choice(Priority, patch["priority"], field="priority")
            if patch.get("priority") else None
        )
        category = (
            coerce_choice(Category, patch["category"], field="category")
            if patch.get("category") else None
        )
        due_by = _parse_due_by(patch["due_by"]) if "due_by" in patch else None

        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            if role == Role.SUPERVISOR and complaint.assigned_supervisor_id != requesting_user.pk:
                raise self._not_yours(complaint_id)

            now = self.clock()
            old_status = complaint.status
            changes: list[str] = []

            status_changed = target_status is not None and target_status != old_status
            if status_changed:
                validate_transition(old_status, target_status, role)
                complaint.status = target_status
                changes.append(f"status {old_status} → {target_status}")
                if target_status == S.ASSIGNED:
                    due = self.sla.start_clock(complaint, now)
                    changes.append(f"SLA restarted, due by {_fmt(due)}")
                elif target_status == S.RESOLVED:
                    complaint.resolved_at = now
                elif target_status == S.WITHDRAWN:
                    complaint.withdrawn_at = now
            else:
                self._ensure_not_withdrawn(complaint)

            new_remarks = str(patch.get("remarks") or "").strip()
            if new_remarks:
                complaint.remarks = _append_remark(complaint.remarks, new_remarks)
                changes.append("remarks updated")
            if priority is not None and priority != complaint.priority:
                changes.append(f"priority {complaint.priority} → {priority}")
                complaint.priority = priority
            if category is not None and category != complaint.category:
                changes.append(f"category {complaint.category} → {category}")
                complaint.category = category
            if due_by is not None:
                complaint.sla_due_by = due_by
                changes.append(f"due date set to {_fmt(due_by)}")
            if "supervisor_image" in patch:
                complaint.supervisor_image = str(patch["supervisor_image"] or "").strip()
                changes.append("supervisor image updated")

            return self._commit(
                complaint,
                actor=requesting_user,
                role=role,
                action=AuditAction.UPDATE,
                old_status=old_status,
                now=now,
                push_history=status_changed,
                history_remarks=f"Updated by {role.label.lower()}",
                audit_remarks=(
                    f"{role.label} updated complaint. "
                    f"Changes: {', '.join(changes) or 'none'}"
                ),
            )

    # ── Sweep primitive ─────────────────────────────────────────────

    def auto_escalate(self, complaint_id: int) -> Complaint | None:
        """
        Escalate one overdue complaint by a single level.

        Eligibility is re-checked under the row lock, so a complaint that
        was reassigned or resolved after the sweep selected it is left
        alone.  The audit write is best-effort.

        Returns
        -------
        Complaint or None
            ``None`` when the complaint is no longer eligible.
        """
        with atomic_unit():
            complaint = lock_for_update(Complaint, complaint_id)
            now = self.clock()
            if not self.sla.is_sweep_eligible(complaint, now):
                logger.info(
                    "Complaint pk=%d no longer eligible for escalation; skipped",
                    complaint.pk,
                )
                return None

            old_level, new_level = self.sla.sweep_escalate(complaint, now)
            return self._commit(
                complaint,
                actor=None,
                role="",
                action=AuditAction.AUTO_ESCALATE,
                old_status=complaint.status,
                now=now,
                push_history=False,
                audit_remarks=(
                    f"SLA breached (due {_fmt(complaint.sla_due_by)}); "
                    f"escalated from level {old_level} to {new_level}"
                ),
                old_escalation_level=old_level,
                new_escalation_level=new_level,
                best_effort=True,
            )


# ═══════════════════════════════════════════════════════════════════
#  Escalation Sweeper
# ═══════════════════════════════════════════════════════════════════


@dataclass
class SweepResult:
    escalated: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


class EscalationSweeper:
    """
    Escalate every overdue, active, not-yet-capped complaint by one level.

    Each complaint is its own atomic unit; a storage failure on one is
    logged and the sweep moves on.
    """

    def __init__(
        self,
        engine: ComplaintLifecycleService | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.engine = engine or ComplaintLifecycleService(clock=clock)
        self.clock = clock or self.engine.clock

    def find_candidates(self, now: datetime.datetime) -> list[int]:
        cap = self.engine.sla.policy.escalation_cap
        try:
            return list(
                Complaint.objects.filter(
                    sla_due_by__lt=now,
                    status__in=ACTIVE_SLA_STATUSES,
                    sla_escalation_level__lt=cap,
                )
                .order_by("sla_due_by", "id")
                .values_list("pk", flat=True)
            )
        except DatabaseError as exc:
            raise InfrastructureError(f"Could not load escalation candidates: {exc}") from exc

    def run(self) -> SweepResult:
        now = self.clock()
        result = SweepResult()
        for pk in self.find_candidates(now):
            try:
                escalated = self.engine.auto_escalate(pk)
            except InfrastructureError:
                logger.exception("Escalation of complaint pk=%d failed", pk)
                result.failed.append(pk)
                continue
            except NotFound:
                result.skipped.append(pk)
                continue
            if escalated is None:
                result.skipped.append(pk)
            else:
                result.escalated.append(pk)

        logger.info(
            "Escalation sweep at %s: %d escalated, %d skipped, %d failed",
            _fmt(now), len(result.escalated), len(result.skipped), len(result.failed),
        )
        return result


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TimelineEvent:
    event: str
    at: datetime.datetime
    description: str
    actor_id: int | None = None


@dataclass(frozen=True)
class ComplaintDetail:
    complaint: Complaint
    sla: SlaSnapshot
    allowed_transitions: list[ComplaintStatus]


class ComplaintQueryService:
    """
    Read-side access to complaints, scoped by role.

    Admins see everything, supervisors and officers see what is assigned
    to them, citizens see their own complaints.  Anything outside that
    scope is reported as not found.
    """

    def __init__(self, *, clock: Clock | None = None, sla: SlaCalculator | None = None) -> None:
        self.clock = clock or timezone.now
        self.sla = sla or SlaCalculator()

    def visible_complaints(self, requesting_user: User) -> QuerySet[Complaint]:
        qs = Complaint.objects.select_related(
            "reporter", "assigned_supervisor", "assigned_officer",
        )
        return apply_role_scope(qs, requesting_user, scope_rules=COMPLAINT_SCOPE_RULES)

    def get_complaint(self, complaint_id: int, requesting_user: User) -> Complaint:
        try:
            return self.visible_complaints(requesting_user).get(pk=complaint_id)
        except Complaint.DoesNotExist:
            raise NotFound(f"Complaint with id {complaint_id} not found.")

    def list_complaints(
        self,
        requesting_user: User,
        *,
        status: str | None = None,
        priority: str | None = None,
        category: str | None = None,
        search: str | None = None,
        overdue: bool | None = None,
    ) -> QuerySet[Complaint]:
        """
        Visible complaints, newest first, narrowed by the given filters.

        ``search`` is a case-insensitive substring match against title,
        description, category and area.
        """
        qs = self.visible_complaints(requesting_user)
        if status:
            qs = qs.filter(status=coerce_choice(ComplaintStatus, status, field="status"))
        if priority:
            qs = qs.filter(priority=coerce_choice(Priority, priority, field="priority"))
        if category:
            qs = qs.filter(category=coerce_choice(Category, category, field="category"))
        search = (search or "").strip()
        if search:
            qs = qs.filter(
                Q(title__icontains=search)
                | Q(description__icontains=search)
                | Q(category__icontains=search)
                | Q(area__icontains=search)
            )
        if overdue:
            qs = qs.filter(
                sla_due_by__lt=self.clock(),
                status__in=ACTIVE_SLA_STATUSES,
            ).order_by("sla_due_by")
        return qs

    def get_detail(self, complaint_id: int, requesting_user: User) -> ComplaintDetail:
        complaint = self.get_complaint(complaint_id, requesting_user)
        return ComplaintDetail(
            complaint=complaint,
            sla=self.sla.snapshot(complaint, self.clock()),
            allowed_transitions=allowed_transitions(
                complaint.status, role_of(requesting_user),
            ),
        )

    def allowed_transitions_for(
        self,
        complaint_id: int,
        requesting_user: User,
    ) -> list[ComplaintStatus]:
        complaint = self.get_complaint(complaint_id, requesting_user)
        return allowed_transitions(complaint.status, role_of(requesting_user))

    def get_history(
        self,
        complaint_id: int,
        requesting_user: User,
    ) -> QuerySet[ComplaintStatusHistory]:
        complaint = self.get_complaint(complaint_id, requesting_user)
        return complaint.status_history.select_related("changed_by")

    def get_history_entry(
        self,
        complaint_id: int,
        entry_id: int,
        requesting_user: User,
    ) -> ComplaintStatusHistory:
        try:
            return self.get_history(complaint_id, requesting_user).get(pk=entry_id)
        except ComplaintStatusHistory.DoesNotExist:
            raise NotFound(f"History entry with id {entry_id} not found.")

    def get_timeline(self, complaint_id: int, requesting_user: User) -> list[TimelineEvent]:
        """
        Merge filing, status history, SLA events, comments and the
        last-update marker into one newest-first list.  Events with equal
        timestamps keep the order in which they were collected.
        """
        complaint = self.get_complaint(complaint_id, requesting_user)

        events = [
            TimelineEvent(
                event="CREATED",
                at=complaint.created_at,
                description=f"Complaint filed: {complaint.title}",
                actor_id=complaint.reporter_id,
            ),
        ]
        for entry in complaint.status_history.all():
            events.append(TimelineEvent(
                event=entry.status,
                at=entry.changed_at,
                description=entry.remarks or f"Status changed to {entry.get_status_display()}",
                actor_id=entry.changed_by_id,
            ))
        if complaint.sla_assigned_at:
            events.append(TimelineEvent(
                event="SLA_ASSIGNED",
                at=complaint.sla_assigned_at,
                description="SLA clock started",
            ))
        if complaint.sla_due_by:
            events.append(TimelineEvent(
                event="SLA_DUE",
                at=complaint.sla_due_by,
                description=f"Resolution due ({complaint.get_priority_display()} priority)",
            ))
        if complaint.sla_escalated_at:
            events.append(TimelineEvent(
                event="ESCALATED",
                at=complaint.sla_escalated_at,
                description=f"Escalated to level {complaint.sla_escalation_level}",
            ))
        for comment in complaint.comments.all():
            events.append(TimelineEvent(
                event="COMMENT",
                at=comment.created_at,
                description=comment.text,
                actor_id=comment.author_id,
            ))
        events.append(TimelineEvent(
            event="UPDATED",
            at=complaint.updated_at,
            description="Last updated",
        ))

        events.sort(key=lambda e: e.at, reverse=True)
        return events
