"""
Tests for the periodic escalation sweep and its management command.
"""

from __future__ import annotations

import datetime
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from audit.models import AuditAction, AuditLogEntry
from complaints.models import Complaint, ComplaintStatus as S, Priority
from complaints.services import EscalationSweeper

pytestmark = pytest.mark.django_db


@pytest.fixture()
def sweeper(engine, clock):
    return EscalationSweeper(engine, clock=clock)


@pytest.fixture()
def assigned(engine, make_complaint, admin_user, supervisor):
    """A MEDIUM complaint assigned to a supervisor; due in 7 days."""
    complaint = make_complaint()
    return engine.assign_to_supervisor(complaint.pk, supervisor.pk, admin_user)


class TestEscalationSweeper:

    def test_nothing_due(self, sweeper, assigned):
        result = sweeper.run()
        assert result.escalated == []

    def test_escalates_one_level_per_run_up_to_cap(self, sweeper, clock, assigned):
        clock.advance(days=8)
        for expected in (1, 2, 3):
            result = sweeper.run()
            assert result.escalated == [assigned.pk]
            assigned.refresh_from_db()
            assert assigned.sla_escalation_level == expected
            assert assigned.sla_escalated_at == clock.now
            clock.advance(hours=1)

        assert sweeper.run().escalated == []
        assigned.refresh_from_db()
        assert assigned.sla_escalation_level == 3
        assert assigned.priority == Priority.MEDIUM

    def test_level_two_reaches_cap(self, sweeper, engine, clock, assigned, admin_user):
        engine.escalate(assigned.pk, admin_user, level=2)
        clock.advance(days=8)
        assert sweeper.run().escalated == [assigned.pk]
        assigned.refresh_from_db()
        assert assigned.sla_escalation_level == 3
        assert sweeper.run().escalated == []

    def test_sweep_is_audited_without_actor(self, sweeper, clock, assigned):
        clock.advance(days=8)
        sweeper.run()
        entry = AuditLogEntry.objects.filter(action=AuditAction.AUTO_ESCALATE).get()
        assert entry.actor is None
        assert entry.actor_role == ""
        assert entry.old_escalation_level == 0
        assert entry.new_escalation_level == 1
        assert assigned.status_history.count() == 1

    def test_inactive_statuses_are_ignored(self, sweeper, engine, clock, assigned,
                                           admin_user):
        engine.override(assigned.pk, "FORCE_REJECT", admin_user)
        clock.advance(days=8)
        assert sweeper.run().escalated == []

    def test_candidates_ordered_by_due_date(self, sweeper, engine, clock, make_complaint,
                                            admin_user, supervisor, officer):
        later = make_complaint()
        engine.assign_to_supervisor(later.pk, supervisor.pk, admin_user)
        sooner = make_complaint()
        engine.assign_to_officer_directly(sooner.pk, officer.pk, admin_user)
        clock.advance(days=10)
        assert sweeper.find_candidates(clock.now) == [sooner.pk, later.pk]

    def test_stale_candidate_is_skipped(self, engine, clock, assigned, admin_user,
                                        supervisor):
        clock.advance(days=8)

        class ReassignBeforeEscalating(EscalationSweeper):
            def find_candidates(self, now):
                pks = super().find_candidates(now)
                engine.reassign(assigned.pk, supervisor.pk, "SUPERVISOR", admin_user)
                return pks

        result = ReassignBeforeEscalating(engine, clock=clock).run()
        assert result.escalated == []
        assert result.skipped == [assigned.pk]
        assigned.refresh_from_db()
        assert assigned.sla_escalation_level == 0

    def test_deleted_candidate_is_skipped(self, engine, clock, assigned):
        clock.advance(days=8)

        class GhostCandidate(EscalationSweeper):
            def find_candidates(self, now):
                return super().find_candidates(now) + [99999]

        result = GhostCandidate(engine, clock=clock).run()
        assert result.escalated == [assigned.pk]
        assert result.skipped == [99999]


class TestRunEscalationSweepCommand:

    def test_single_pass(self, assigned):
        Complaint.objects.filter(pk=assigned.pk).update(
            sla_due_by=datetime.datetime(2000, 1, 1, tzinfo=datetime.timezone.utc),
        )
        out = StringIO()
        call_command("run_escalation_sweep", stdout=out)
        assert "Escalated 1 complaint(s)" in out.getvalue()
        assigned.refresh_from_db()
        assert assigned.sla_escalation_level == 1
        assert assigned.status == S.ASSIGNED

    @pytest.mark.parametrize("interval", [0, -5])
    def test_interval_below_one_is_rejected(self, interval):
        with pytest.raises(CommandError, match="at least 1 second"):
            call_command("run_escalation_sweep", loop=True, interval=interval)
