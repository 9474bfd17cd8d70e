"""
Lifecycle tests for filing, assignment and reassignment.
"""

from __future__ import annotations

import datetime

import pytest

from accounts.models import Role
from audit.models import AuditAction, AuditLogEntry
from complaints.models import Complaint, ComplaintStatus as S, Priority
from core.domain.exceptions import (
    InvalidAssignee,
    InvalidState,
    NotFound,
    Unauthorized,
    ValidationError,
)

pytestmark = pytest.mark.django_db

DAY = datetime.timedelta(days=1)


# ════════════════════════════════════════════════════════════════════
#  Filing
# ════════════════════════════════════════════════════════════════════

class TestFileComplaint:

    def test_new_complaint_defaults(self, make_complaint, citizen):
        complaint = make_complaint(images=["a.jpg", "  ", "b.jpg"])
        assert complaint.status == S.CREATED
        assert complaint.priority == Priority.MEDIUM
        assert complaint.reporter == citizen
        assert complaint.citizen_images == ["a.jpg", "b.jpg"]
        assert complaint.sla_due_by is None
        assert complaint.status_history.count() == 0

    def test_filing_is_audited(self, make_complaint):
        complaint = make_complaint()
        entry = AuditLogEntry.objects.get(complaint=complaint)
        assert entry.action == AuditAction.CREATE
        assert entry.new_status == S.CREATED

    def test_only_citizens_file(self, engine, officer):
        with pytest.raises(Unauthorized):
            engine.file_complaint(officer, {
                "title": "t", "description": "d", "category": "Road", "area": "a",
            })

    def test_missing_fields(self, make_complaint):
        with pytest.raises(ValidationError) as exc_info:
            make_complaint(title="  ")
        assert exc_info.value.field == "title"

    def test_unknown_category(self, make_complaint):
        with pytest.raises(ValidationError) as exc_info:
            make_complaint(category="Parks")
        assert "Road" in str(exc_info.value)


# ════════════════════════════════════════════════════════════════════
#  Assignment
# ════════════════════════════════════════════════════════════════════

class TestAssignToSupervisor:

    def test_medium_priority_gets_seven_days(self, engine, clock, make_complaint,
                                             admin_user, supervisor):
        complaint = make_complaint()
        complaint = engine.assign_to_supervisor(complaint.pk, supervisor.pk, admin_user)

        assert complaint.status == S.ASSIGNED
        assert complaint.assigned_supervisor == supervisor
        assert complaint.sla_assigned_at == clock.now
        assert complaint.sla_due_by == clock.now + 7 * DAY

        history = list(complaint.status_history.all())
        assert [h.status for h in history] == [S.ASSIGNED]
        assert history[0].changed_by == admin_user
        assert history[0].role == Role.ADMIN

        entry = AuditLogEntry.objects.filter(complaint=complaint).first()
        assert entry.action == AuditAction.ASSIGN_TO_SUPERVISOR
        assert entry.old_status == S.CREATED
        assert entry.new_status == S.ASSIGNED

    def test_requires_admin(self, engine, make_complaint, supervisor):
        complaint = make_complaint()
        with pytest.raises(Unauthorized):
            engine.assign_to_supervisor(complaint.pk, supervisor.pk, supervisor)

    def test_wrong_role_assignee(self, engine, make_complaint, admin_user, officer):
        complaint = make_complaint()
        with pytest.raises(InvalidAssignee):
            engine.assign_to_supervisor(complaint.pk, officer.pk, admin_user)
        complaint.refresh_from_db()
        assert complaint.status == S.CREATED

    def test_inactive_assignee(self, engine, make_complaint, admin_user, create_user):
        inactive = create_user(role=Role.SUPERVISOR, is_active=False)
        complaint = make_complaint()
        with pytest.raises(InvalidAssignee):
            engine.assign_to_supervisor(complaint.pk, inactive.pk, admin_user)

    def test_unknown_complaint(self, engine, admin_user, supervisor):
        with pytest.raises(NotFound):
            engine.assign_to_supervisor(9999, supervisor.pk, admin_user)

    def test_withdrawn_complaint_cannot_be_assigned(self, engine, make_complaint,
                                                    citizen, admin_user, supervisor):
        complaint = make_complaint()
        engine.citizen_withdraw(complaint.pk, citizen)
        with pytest.raises(InvalidState):
            engine.assign_to_supervisor(complaint.pk, supervisor.pk, admin_user)


class TestAssignToOfficerDirectly:

    def test_direct_assignment(self, engine, clock, make_complaint, admin_user,
                               supervisor, officer):
        complaint = make_complaint()
        engine.assign_to_supervisor(complaint.pk, supervisor.pk, admin_user)
        clock.advance(hours=5)

        complaint = engine.assign_to_officer_directly(complaint.pk, officer.pk, admin_user)

        assert complaint.status == S.IN_PROGRESS
        assert complaint.assigned_officer == officer
        assert complaint.assigned_supervisor is None
        assert complaint.sla_due_by == clock.now + 3 * DAY
        assert AuditLogEntry.objects.filter(
            complaint=complaint, action=AuditAction.DIRECT_ASSIGN_TO_OFFICER,
        ).count() == 1


# ════════════════════════════════════════════════════════════════════
#  Reassignment
# ════════════════════════════════════════════════════════════════════

class TestReassign:

    def test_critical_complaint_to_new_supervisor(self, engine, clock, make_complaint,
                                                  admin_user, supervisor, create_user):
        other = create_user(role=Role.SUPERVISOR)
        complaint = make_complaint()
        engine.assign_to_supervisor(complaint.pk, supervisor.pk, admin_user)
        engine.escalate(complaint.pk, admin_user, level=3)
        complaint.refresh_from_db()
        assert complaint.priority == Priority.CRITICAL
        assert complaint.sla_escalation_level == 3

        clock.advance(days=2)
        complaint = engine.reassign(complaint.pk, other.pk, Role.SUPERVISOR, admin_user,
                                    reason="Workload")

        assert complaint.assigned_supervisor == other
        assert complaint.status == S.ASSIGNED
        assert complaint.sla_due_by == clock.now + DAY
        assert complaint.sla_escalation_level == 0

        entry = AuditLogEntry.objects.filter(
            complaint=complaint, action=AuditAction.REASSIGN,
        ).get()
        assert "Workload" in entry.remarks

    def test_to_officer_clears_supervisor(self, engine, make_complaint, admin_user,
                                          supervisor, officer):
        complaint = make_complaint()
        engine.assign_to_supervisor(complaint.pk, supervisor.pk, admin_user)
        complaint = engine.reassign(complaint.pk, officer.pk, "OFFICER", admin_user)
        assert complaint.status == S.IN_PROGRESS
        assert complaint.assigned_officer == officer
        assert complaint.assigned_supervisor is None

    def test_to_supervisor_clears_officer(self, engine, make_complaint, admin_user,
                                          supervisor, officer):
        complaint = make_complaint()
        engine.assign_to_officer_directly(complaint.pk, officer.pk, admin_user)
        complaint = engine.reassign(complaint.pk, supervisor.pk, "SUPERVISOR", admin_user)
        assert complaint.assigned_officer is None
        assert complaint.assigned_supervisor == supervisor

    def test_resolved_cannot_be_reassigned(self, engine, make_complaint, admin_user,
                                           supervisor):
        complaint = make_complaint()
        engine.override(complaint.pk, "FORCE_RESOLVE", admin_user)
        with pytest.raises(InvalidState):
            engine.reassign(complaint.pk, supervisor.pk, Role.SUPERVISOR, admin_user)
        complaint.refresh_from_db()
        assert complaint.status == S.RESOLVED

    def test_only_supervisor_or_officer(self, engine, make_complaint, admin_user, citizen):
        complaint = make_complaint()
        with pytest.raises(ValidationError):
            engine.reassign(complaint.pk, citizen.pk, Role.CITIZEN, admin_user)

    def test_assignments_always_reset_the_clock(self, engine, clock, make_complaint,
                                                admin_user, supervisor, officer):
        complaint = make_complaint()
        steps = [
            lambda: engine.assign_to_supervisor(complaint.pk, supervisor.pk, admin_user),
            lambda: engine.escalate(complaint.pk, admin_user, level=2),
            lambda: engine.assign_to_officer_directly(complaint.pk, officer.pk, admin_user),
            lambda: engine.escalate(complaint.pk, admin_user),
            lambda: engine.reassign(complaint.pk, supervisor.pk, "SUPERVISOR", admin_user),
        ]
        for step in steps:
            clock.advance(hours=3)
            result = step()
            if result.status in (S.ASSIGNED, S.IN_PROGRESS) and result.sla_assigned_at == clock.now:
                assert result.sla_escalation_level == 0
                assert result.sla_due_by > clock.now

        assert Complaint.objects.get(pk=complaint.pk).sla_escalation_level == 0
