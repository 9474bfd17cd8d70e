"""
Audit app models.

``AuditLogEntry`` is the durable, append-only trail of every
state-affecting action.  Rows are written exclusively by
``audit.services.AuditRecorder`` and are never updated or deleted.
"""

from django.conf import settings
from django.db import models

from accounts.models import Role
from core.domain.exceptions import DomainError


class AuditAction(models.TextChoices):
    CREATE = "CREATE", "Create"
    UPDATE = "UPDATE", "Update"
    ASSIGN_TO_SUPERVISOR = "ASSIGN_TO_SUPERVISOR", "Assign to Supervisor"
    DIRECT_ASSIGN_TO_OFFICER = "DIRECT_ASSIGN_TO_OFFICER", "Direct Assign to Officer"
    REASSIGN = "REASSIGN", "Reassign"
    ESCALATE = "ESCALATE", "Escalate"
    AUTO_ESCALATE = "AUTO_ESCALATE", "Automatic Escalation"
    ADMIN_REOPEN = "ADMIN_REOPEN", "Admin Reopen"
    ADMIN_FORCE_RESOLVE = "ADMIN_FORCE_RESOLVE", "Admin Force Resolve"
    ADMIN_FORCE_REJECT = "ADMIN_FORCE_REJECT", "Admin Force Reject"
    SUBMIT = "SUBMIT", "Submit Resolution"
    VERIFY = "VERIFY", "Verify"
    REJECT = "REJECT", "Reject"
    ASSIGN = "ASSIGN", "Assign Officer"
    WITHDRAW = "WITHDRAW", "Withdraw"
    USER_ACTIVATE = "USER_ACTIVATE", "User Activate"
    USER_DEACTIVATE = "USER_DEACTIVATE", "User Deactivate"


class AuditLogEntry(models.Model):
    """
    One immutable audit record.

    ``actor`` is empty only for entries written by the escalation sweep.
    ``complaint`` is empty for user-management entries, which carry
    ``target_user`` instead.
    """

    complaint = models.ForeignKey(
        "complaints.Complaint",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="audit_entries",
        verbose_name="Complaint",
    )
    target_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="audit_entries_as_target",
        verbose_name="Target User",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="audit_entries",
        verbose_name="Actor",
    )
    actor_role = models.CharField(
        max_length=20,
        choices=Role.choices,
        blank=True,
        default="",
        db_index=True,
        verbose_name="Actor Role",
    )
    action = models.CharField(
        max_length=40,
        choices=AuditAction.choices,
        db_index=True,
        verbose_name="Action",
    )
    old_status = models.CharField(
        max_length=30,
        blank=True,
        default="",
        verbose_name="Old Status",
    )
    new_status = models.CharField(
        max_length=30,
        blank=True,
        default="",
        verbose_name="New Status",
    )
    old_escalation_level = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="Old Escalation Level",
    )
    new_escalation_level = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="New Escalation Level",
    )
    remarks = models.TextField(
        blank=True,
        default="",
        verbose_name="Remarks",
    )
    created_at = models.DateTimeField(
        db_index=True,
        verbose_name="Recorded At",
    )

    class Meta:
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log Entries"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        who = self.actor or "system"
        return f"[{self.action}] by {who} at {self.created_at:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise DomainError("Audit log entries are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise DomainError("Audit log entries cannot be deleted.")
