"""
SLA calculation for complaints.

``SlaPolicy`` holds the configurable offsets (read from
``settings.COMPLAINT_SLA``); ``SlaCalculator`` applies them to a
complaint.  The calculator mutates the in-memory complaint only; saving
is the caller's job, which keeps every SLA change inside the caller's
atomic unit.
"""

from __future__ import annotations

import datetime
import math
from dataclasses import dataclass

from django.conf import settings

from .models import Complaint, ComplaintStatus, Priority, SlaState

#: Statuses during which the due date is live.
ACTIVE_SLA_STATUSES = frozenset({ComplaintStatus.ASSIGNED, ComplaintStatus.IN_PROGRESS})


@dataclass(frozen=True)
class SlaPolicy:
    """Day offsets and the sweep's escalation ceiling."""

    critical_days: int = 1
    high_days: int = 2
    medium_days: int = 7
    low_days: int = 14
    direct_officer_days: int = 3
    escalation_cap: int = 3

    @classmethod
    def from_settings(cls) -> SlaPolicy:
        """Build a policy from ``settings.COMPLAINT_SLA`` (upper-case keys)."""
        configured = getattr(settings, "COMPLAINT_SLA", {}) or {}
        values = {}
        for name in cls.__dataclass_fields__:
            key = name.upper()
            if key in configured:
                values[name] = int(configured[key])
        return cls(**values)

    def days_for_priority(self, priority: str) -> int:
        """Unknown priorities fall back to the MEDIUM offset."""
        return {
            Priority.CRITICAL: self.critical_days,
            Priority.HIGH: self.high_days,
            Priority.MEDIUM: self.medium_days,
            Priority.LOW: self.low_days,
        }.get(priority, self.medium_days)


@dataclass(frozen=True)
class SlaSnapshot:
    """Read-only SLA view of a complaint at a given instant."""

    state: SlaState
    is_overdue: bool
    days_overdue: int
    due_by: datetime.datetime | None
    escalation_level: int
    escalated_at: datetime.datetime | None


class SlaCalculator:
    """
    Apply an ``SlaPolicy`` to complaints.

    Every method takes ``now`` explicitly; the lifecycle service passes
    its injected clock's reading.
    """

    def __init__(self, policy: SlaPolicy | None = None) -> None:
        self.policy = policy or SlaPolicy.from_settings()

    # ── Due dates ───────────────────────────────────────────────────

    def due_by(
        self,
        priority: str,
        assigned_at: datetime.datetime,
        *,
        direct_officer: bool = False,
    ) -> datetime.datetime:
        if direct_officer:
            days = self.policy.direct_officer_days
        else:
            days = self.policy.days_for_priority(priority)
        return assigned_at + datetime.timedelta(days=days)

    def start_clock(
        self,
        complaint: Complaint,
        now: datetime.datetime,
        *,
        direct_officer: bool = False,
    ) -> datetime.datetime:
        """
        Stamp a (re)assignment: new ``sla_assigned_at``, recomputed
        ``sla_due_by``, escalation level back to 0.  Returns the due date.
        """
        complaint.sla_assigned_at = now
        complaint.sla_due_by = self.due_by(
            complaint.priority, now, direct_officer=direct_officer,
        )
        complaint.sla_escalation_level = 0
        return complaint.sla_due_by

    # ── Escalation ──────────────────────────────────────────────────

    def escalate(
        self,
        complaint: Complaint,
        now: datetime.datetime,
        level: int = 1,
    ) -> tuple[int, int]:
        """
        Manual escalation: raise the level by ``level``, bump priority to
        HIGH, or CRITICAL once the level reaches the cap.

        The level is not clamped to the cap.  Returns ``(old, new)`` levels.
        """
        old_level = complaint.sla_escalation_level
        new_level = old_level + level
        complaint.sla_escalation_level = new_level
        complaint.sla_escalated_at = now
        if new_level >= self.policy.escalation_cap:
            complaint.priority = Priority.CRITICAL
        else:
            complaint.priority = Priority.HIGH
        return old_level, new_level

    def is_sweep_eligible(self, complaint: Complaint, now: datetime.datetime) -> bool:
        return (
            complaint.sla_due_by is not None
            and complaint.sla_due_by < now
            and complaint.status in ACTIVE_SLA_STATUSES
            and complaint.sla_escalation_level < self.policy.escalation_cap
        )

    def sweep_escalate(self, complaint: Complaint, now: datetime.datetime) -> tuple[int, int]:
        """One automatic step: level + 1, priority untouched."""
        old_level = complaint.sla_escalation_level
        complaint.sla_escalation_level = old_level + 1
        complaint.sla_escalated_at = now
        return old_level, complaint.sla_escalation_level

    # ── Read-side status ────────────────────────────────────────────

    def snapshot(self, complaint: Complaint, now: datetime.datetime) -> SlaSnapshot:
        due = complaint.sla_due_by
        overdue = (
            due is not None
            and due < now
            and complaint.status in ACTIVE_SLA_STATUSES
        )
        if overdue:
            state = SlaState.OVERDUE
            days_overdue = math.ceil((now - due) / datetime.timedelta(days=1))
        else:
            days_overdue = 0
            if complaint.sla_escalation_level > 0:
                state = SlaState.ESCALATED
            else:
                state = SlaState.ON_TRACK
        return SlaSnapshot(
            state=state,
            is_overdue=overdue,
            days_overdue=days_overdue,
            due_by=due,
            escalation_level=complaint.sla_escalation_level,
            escalated_at=complaint.sla_escalated_at,
        )
