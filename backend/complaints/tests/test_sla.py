"""
Unit tests for ``complaints.sla``.

Complaints are built in memory; the calculator never touches the
database.
"""

from __future__ import annotations

import datetime

import pytest
from django.test import override_settings
from django.utils import timezone

from complaints.models import Complaint, ComplaintStatus, Priority, SlaState
from complaints.sla import SlaCalculator, SlaPolicy

NOW = datetime.datetime(2026, 3, 1, 9, 0, tzinfo=datetime.timezone.utc)


def _complaint(**fields) -> Complaint:
    defaults = {
        "status": ComplaintStatus.ASSIGNED,
        "priority": Priority.MEDIUM,
        "sla_escalation_level": 0,
    }
    defaults.update(fields)
    return Complaint(**defaults)


@pytest.fixture()
def calc() -> SlaCalculator:
    return SlaCalculator(SlaPolicy())


# ════════════════════════════════════════════════════════════════════
#  Policy
# ════════════════════════════════════════════════════════════════════

class TestSlaPolicy:

    @override_settings(COMPLAINT_SLA={"MEDIUM_DAYS": 5, "ESCALATION_CAP": 4})
    def test_from_settings_overrides_defaults(self):
        policy = SlaPolicy.from_settings()
        assert policy.medium_days == 5
        assert policy.escalation_cap == 4
        assert policy.critical_days == 1

    def test_unknown_priority_falls_back_to_medium(self):
        assert SlaPolicy().days_for_priority("URGENT") == 7


# ════════════════════════════════════════════════════════════════════
#  Due dates
# ════════════════════════════════════════════════════════════════════

class TestDueBy:

    @pytest.mark.parametrize(
        "priority,days",
        [
            (Priority.CRITICAL, 1),
            (Priority.HIGH, 2),
            (Priority.MEDIUM, 7),
            (Priority.LOW, 14),
        ],
    )
    def test_priority_offsets(self, calc, priority, days):
        assert calc.due_by(priority, NOW) == NOW + datetime.timedelta(days=days)

    def test_direct_officer_ignores_priority(self, calc):
        due = calc.due_by(Priority.LOW, NOW, direct_officer=True)
        assert due == NOW + datetime.timedelta(days=3)

    def test_start_clock_resets_escalation(self, calc):
        complaint = _complaint(priority=Priority.CRITICAL, sla_escalation_level=2)
        due = calc.start_clock(complaint, NOW)
        assert due == NOW + datetime.timedelta(days=1)
        assert complaint.sla_assigned_at == NOW
        assert complaint.sla_due_by == due
        assert complaint.sla_escalation_level == 0


# ════════════════════════════════════════════════════════════════════
#  Escalation
# ════════════════════════════════════════════════════════════════════

class TestEscalation:

    def test_manual_escalation_below_cap_sets_high(self, calc):
        complaint = _complaint(priority=Priority.LOW)
        assert calc.escalate(complaint, NOW) == (0, 1)
        assert complaint.priority == Priority.HIGH
        assert complaint.sla_escalated_at == NOW

    def test_manual_escalation_reaching_cap_sets_critical(self, calc):
        complaint = _complaint(sla_escalation_level=2)
        assert calc.escalate(complaint, NOW) == (2, 3)
        assert complaint.priority == Priority.CRITICAL

    def test_manual_escalation_is_not_clamped(self, calc):
        complaint = _complaint(sla_escalation_level=3)
        assert calc.escalate(complaint, NOW, level=2) == (3, 5)
        assert complaint.priority == Priority.CRITICAL

    def test_sweep_escalation_leaves_priority(self, calc):
        complaint = _complaint(priority=Priority.LOW, sla_escalation_level=1)
        assert calc.sweep_escalate(complaint, NOW) == (1, 2)
        assert complaint.priority == Priority.LOW

    @pytest.mark.parametrize(
        "fields,eligible",
        [
            ({"sla_due_by": NOW - datetime.timedelta(hours=1)}, True),
            ({"sla_due_by": NOW + datetime.timedelta(hours=1)}, False),
            ({"sla_due_by": None}, False),
            ({"sla_due_by": NOW - datetime.timedelta(days=1),
              "status": ComplaintStatus.PENDING_VERIFICATION}, False),
            ({"sla_due_by": NOW - datetime.timedelta(days=1),
              "sla_escalation_level": 3}, False),
            ({"sla_due_by": NOW - datetime.timedelta(days=1),
              "status": ComplaintStatus.IN_PROGRESS,
              "sla_escalation_level": 2}, True),
        ],
    )
    def test_sweep_eligibility(self, calc, fields, eligible):
        assert calc.is_sweep_eligible(_complaint(**fields), NOW) is eligible


# ════════════════════════════════════════════════════════════════════
#  Snapshot
# ════════════════════════════════════════════════════════════════════

class TestSnapshot:

    def test_on_track(self, calc):
        snap = calc.snapshot(_complaint(sla_due_by=NOW + datetime.timedelta(days=2)), NOW)
        assert snap.state == SlaState.ON_TRACK
        assert snap.is_overdue is False
        assert snap.days_overdue == 0

    def test_overdue_rounds_partial_days_up(self, calc):
        due = NOW - datetime.timedelta(days=1, hours=2)
        snap = calc.snapshot(_complaint(sla_due_by=due), NOW)
        assert snap.state == SlaState.OVERDUE
        assert snap.is_overdue is True
        assert snap.days_overdue == 2

    def test_past_due_but_inactive_is_not_overdue(self, calc):
        complaint = _complaint(
            status=ComplaintStatus.RESOLVED,
            sla_due_by=NOW - datetime.timedelta(days=3),
            sla_escalation_level=1,
        )
        snap = calc.snapshot(complaint, NOW)
        assert snap.is_overdue is False
        assert snap.state == SlaState.ESCALATED

    def test_no_due_date(self, calc):
        snap = calc.snapshot(_complaint(status=ComplaintStatus.CREATED), timezone.now())
        assert snap.due_by is None
        assert snap.state == SlaState.ON_TRACK
