"""
Lifecycle tests for manual escalation, admin overrides and the generic
update.
"""

from __future__ import annotations

import datetime

import pytest

from accounts.models import Role
from audit.models import AuditAction, AuditLogEntry
from complaints.models import ComplaintStatus as S, Priority
from core.domain.exceptions import (
    InvalidState,
    InvalidTransition,
    NotFound,
    Unauthorized,
    ValidationError,
)

pytestmark = pytest.mark.django_db


# ════════════════════════════════════════════════════════════════════
#  Manual escalation
# ════════════════════════════════════════════════════════════════════

class TestEscalate:

    def test_single_step(self, engine, clock, make_complaint, admin_user):
        complaint = make_complaint()
        complaint = engine.escalate(complaint.pk, admin_user, reason="Press coverage")
        assert complaint.sla_escalation_level == 1
        assert complaint.priority == Priority.HIGH
        assert complaint.sla_escalated_at == clock.now
        assert complaint.status_history.count() == 0

        entry = AuditLogEntry.objects.filter(action=AuditAction.ESCALATE).get()
        assert entry.old_escalation_level == 0
        assert entry.new_escalation_level == 1
        assert "Press coverage" in entry.remarks

    def test_can_exceed_cap(self, engine, make_complaint, admin_user):
        complaint = make_complaint()
        engine.escalate(complaint.pk, admin_user, level=3)
        complaint = engine.escalate(complaint.pk, admin_user, level=2)
        assert complaint.sla_escalation_level == 5
        assert complaint.priority == Priority.CRITICAL

    @pytest.mark.parametrize("level", [0, -1, True, "2"])
    def test_rejects_bad_levels(self, engine, make_complaint, admin_user, level):
        complaint = make_complaint()
        with pytest.raises(ValidationError):
            engine.escalate(complaint.pk, admin_user, level=level)

    def test_admin_only(self, engine, make_complaint, citizen):
        complaint = make_complaint()
        with pytest.raises(Unauthorized):
            engine.escalate(complaint.pk, citizen)


# ════════════════════════════════════════════════════════════════════
#  Overrides
# ════════════════════════════════════════════════════════════════════

class TestOverride:

    def test_force_resolve_from_created(self, engine, clock, make_complaint, admin_user):
        complaint = make_complaint()
        complaint = engine.override(complaint.pk, "FORCE_RESOLVE", admin_user,
                                    reason="Duplicate of #12")
        assert complaint.status == S.RESOLVED
        assert complaint.resolved_by_admin is True
        assert complaint.resolved_at == clock.now
        assert f"[FORCE RESOLVED BY ADMIN - {clock.now:%Y-%m-%d}]: Duplicate of #12" in complaint.remarks

        entry = AuditLogEntry.objects.filter(complaint=complaint).first()
        assert entry.action == AuditAction.ADMIN_FORCE_RESOLVE
        assert entry.old_status == S.CREATED
        assert entry.new_status == S.RESOLVED

    def test_force_reject(self, engine, make_complaint, admin_user):
        complaint = make_complaint()
        complaint = engine.override(complaint.pk, "FORCE_REJECT", admin_user)
        assert complaint.status == S.REJECTED
        assert complaint.rejected_by_admin is True
        assert "FORCE REJECTED BY ADMIN" in complaint.remarks

    def test_reopen_resolved(self, engine, make_complaint, admin_user):
        complaint = make_complaint()
        engine.override(complaint.pk, "FORCE_RESOLVE", admin_user)
        complaint = engine.override(complaint.pk, "REOPEN", admin_user, reason="Recurred")
        assert complaint.status == S.ASSIGNED
        assert "REOPENED BY ADMIN" in complaint.remarks
        assert [h.status for h in complaint.status_history.all()] == [
            S.RESOLVED, S.ASSIGNED,
        ]

    def test_reopen_must_follow_the_table(self, engine, make_complaint, admin_user):
        complaint = make_complaint()
        engine.override(complaint.pk, "FORCE_RESOLVE", admin_user)
        engine.override(complaint.pk, "REOPEN", admin_user)
        with pytest.raises(InvalidTransition):
            engine.override(complaint.pk, "REOPEN", admin_user)

    def test_unknown_action(self, engine, make_complaint, admin_user):
        complaint = make_complaint()
        with pytest.raises(ValidationError):
            engine.override(complaint.pk, "DELETE", admin_user)


# ════════════════════════════════════════════════════════════════════
#  Generic update
# ════════════════════════════════════════════════════════════════════

class TestUpdate:

    def test_admin_edits_fields_without_history(self, engine, make_complaint, admin_user):
        complaint = make_complaint()
        due = datetime.datetime(2030, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
        complaint = engine.update(
            complaint.pk,
            {"priority": "HIGH", "category": "Water", "remarks": "Checked",
             "due_by": due.isoformat()},
            Role.ADMIN,
            admin_user,
        )
        assert complaint.priority == Priority.HIGH
        assert complaint.category == "Water"
        assert complaint.remarks == "Checked"
        assert complaint.sla_due_by == due
        assert complaint.status_history.count() == 0

        entry = AuditLogEntry.objects.filter(action=AuditAction.UPDATE).get()
        assert "priority MEDIUM → HIGH" in entry.remarks

    def test_remarks_are_appended(self, engine, make_complaint, admin_user):
        complaint = make_complaint()
        engine.update(complaint.pk, {"remarks": "first"}, Role.ADMIN, admin_user)
        complaint = engine.update(complaint.pk, {"remarks": "second"}, Role.ADMIN, admin_user)
        assert complaint.remarks == "first\nsecond"

    def test_status_change_to_assigned_starts_sla(self, engine, clock, make_complaint,
                                                  admin_user):
        complaint = make_complaint()
        complaint = engine.update(complaint.pk, {"status": "ASSIGNED"}, "ADMIN", admin_user)
        assert complaint.status == S.ASSIGNED
        assert complaint.sla_due_by == clock.now + datetime.timedelta(days=7)
        assert complaint.status_history.get().status == S.ASSIGNED

    def test_status_change_to_withdrawn_stamps_time(self, engine, clock, make_complaint,
                                                    admin_user):
        complaint = make_complaint()
        clock.advance(hours=3)
        complaint = engine.update(complaint.pk, {"status": "WITHDRAWN"}, Role.ADMIN, admin_user)
        assert complaint.status == S.WITHDRAWN
        assert complaint.withdrawn_at == clock.now
        assert complaint.resolved_at is None

    def test_supervisor_update_scoped(self, engine, make_complaint, admin_user, supervisor,
                                      create_user):
        complaint = make_complaint()
        engine.assign_to_supervisor(complaint.pk, supervisor.pk, admin_user)
        stranger = create_user(role=Role.SUPERVISOR)
        with pytest.raises(NotFound):
            engine.update(complaint.pk, {"remarks": "x"}, Role.SUPERVISOR, stranger)
        complaint = engine.update(complaint.pk, {"supervisor_image": "site.jpg"},
                                  Role.SUPERVISOR, supervisor)
        assert complaint.supervisor_image == "site.jpg"

    def test_role_must_match_user(self, engine, make_complaint, supervisor):
        complaint = make_complaint()
        with pytest.raises(Unauthorized):
            engine.update(complaint.pk, {"remarks": "x"}, Role.ADMIN, supervisor)

    def test_officers_cannot_update(self, engine, make_complaint, officer):
        complaint = make_complaint()
        with pytest.raises(Unauthorized):
            engine.update(complaint.pk, {"remarks": "x"}, Role.OFFICER, officer)

    def test_illegal_status(self, engine, make_complaint, admin_user):
        complaint = make_complaint()
        with pytest.raises(InvalidTransition):
            engine.update(complaint.pk, {"status": "RESOLVED"}, Role.ADMIN, admin_user)

    @pytest.mark.parametrize("patch", [{}, {"title": "new"}, {"due_by": "tomorrow"}])
    def test_bad_patches(self, engine, make_complaint, admin_user, patch):
        complaint = make_complaint()
        with pytest.raises(ValidationError):
            engine.update(complaint.pk, patch, Role.ADMIN, admin_user)

    def test_withdrawn_fields_frozen(self, engine, make_complaint, citizen, admin_user):
        complaint = make_complaint()
        engine.citizen_withdraw(complaint.pk, citizen)
        with pytest.raises(InvalidState):
            engine.update(complaint.pk, {"remarks": "late note"}, Role.ADMIN, admin_user)
