"""
Complaints app models.

Covers the complete complaint lifecycle, from a citizen filing a
complaint, through supervisor routing and officer resolution, to
verification, rejection, withdrawal or admin override.  SLA tracking
fields live directly on the complaint row so that the escalation sweep
can select overdue work with a single indexed query.
"""

from django.conf import settings
from django.db import models

from accounts.models import Role
from core.domain.exceptions import DomainError
from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class ComplaintStatus(models.TextChoices):
    """
    Workflow states.  ``WITHDRAWN`` is terminal; every other state has
    at least one outgoing transition (see ``complaints.transitions``).
    """

    CREATED = "CREATED", "Created"
    ASSIGNED = "ASSIGNED", "Assigned"
    IN_PROGRESS = "IN_PROGRESS", "In Progress"
    PENDING_VERIFICATION = "PENDING_VERIFICATION", "Pending Verification"
    RESOLVED = "RESOLVED", "Resolved"
    REJECTED = "REJECTED", "Rejected"
    WITHDRAWN = "WITHDRAWN", "Withdrawn"


class Priority(models.TextChoices):
    """Urgency; drives the SLA due date on supervisor assignment."""

    LOW = "LOW", "Low"
    MEDIUM = "MEDIUM", "Medium"
    HIGH = "HIGH", "High"
    CRITICAL = "CRITICAL", "Critical"


class Category(models.TextChoices):
    ROAD = "Road", "Road"
    WATER = "Water", "Water"
    ELECTRICITY = "Electricity", "Electricity"
    SANITATION = "Sanitation", "Sanitation"
    OTHER = "Other", "Other"


class OverrideAction(models.TextChoices):
    """Admin escape hatches.  Only ``REOPEN`` goes through the transition table."""

    REOPEN = "REOPEN", "Reopen"
    FORCE_RESOLVE = "FORCE_RESOLVE", "Force Resolve"
    FORCE_REJECT = "FORCE_REJECT", "Force Reject"


class SlaState(models.TextChoices):
    """Derived, read-only SLA status reported by the detail view."""

    ON_TRACK = "ON_TRACK", "On Track"
    OVERDUE = "OVERDUE", "Overdue"
    ESCALATED = "ESCALATED", "Escalated"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Complaint(TimeStampedModel):
    """
    Aggregate root of the system: one municipal service complaint.

    * ``title``, ``description``, ``category``, ``area`` and ``reporter``
      are fixed at filing time.
    * ``status``, ``priority``, assignees, remarks and images are only
      changed by ``ComplaintLifecycleService``.
    * ``sla_*`` fields are only meaningful while the complaint is
      ASSIGNED or IN_PROGRESS.
    """

    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="complaints",
        verbose_name="Reporter",
    )
    title = models.CharField(
        max_length=255,
        verbose_name="Title",
    )
    description = models.TextField(
        verbose_name="Description",
    )
    category = models.CharField(
        max_length=20,
        choices=Category.choices,
        verbose_name="Category",
    )
    area = models.CharField(
        max_length=255,
        verbose_name="Area",
    )
    status = models.CharField(
        max_length=30,
        choices=ComplaintStatus.choices,
        default=ComplaintStatus.CREATED,
        db_index=True,
        verbose_name="Current Status",
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
        verbose_name="Priority",
    )

    # ── Assignment ──────────────────────────────────────────────────
    assigned_supervisor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="supervised_complaints",
        verbose_name="Assigned Supervisor",
    )
    assigned_officer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="officer_complaints",
        verbose_name="Assigned Officer",
    )
    remarks = models.TextField(
        blank=True,
        default="",
        verbose_name="Remarks",
    )

    # ── Images (opaque references, one slot per party) ──────────────
    citizen_images = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Citizen Images",
    )
    supervisor_image = models.CharField(
        max_length=500,
        blank=True,
        default="",
        verbose_name="Supervisor Image",
    )
    officer_image = models.CharField(
        max_length=500,
        blank=True,
        default="",
        verbose_name="Officer Image",
    )

    # ── SLA ─────────────────────────────────────────────────────────
    sla_assigned_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="SLA Assigned At",
    )
    sla_due_by = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name="SLA Due By",
    )
    sla_escalated_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Last Escalated At",
    )
    sla_escalation_level = models.PositiveIntegerField(
        default=0,
        verbose_name="Escalation Level",
        help_text="Reset to 0 on every (re)assignment.",
    )

    # ── Closure bookkeeping ─────────────────────────────────────────
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Resolved At",
    )
    withdrawn_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Withdrawn At",
    )
    resolved_by_admin = models.BooleanField(
        default=False,
        verbose_name="Force-resolved by Admin",
    )
    rejected_by_admin = models.BooleanField(
        default=False,
        verbose_name="Force-rejected by Admin",
    )

    class Meta:
        verbose_name = "Complaint"
        verbose_name_plural = "Complaints"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "sla_due_by"], name="complaint_status_due_idx"),
        ]

    def __str__(self):
        return f"Complaint #{self.pk}: {self.title} [{self.get_status_display()}]"


class ComplaintStatusHistory(models.Model):
    """
    Append-only record of every status the complaint entered.

    Insertion order (primary key) is authoritative; ``changed_at`` comes
    from the service clock.
    """

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="status_history",
        verbose_name="Complaint",
    )
    status = models.CharField(
        max_length=30,
        choices=ComplaintStatus.choices,
        verbose_name="Status",
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="complaint_status_changes",
        verbose_name="Changed By",
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        verbose_name="Acting Role",
    )
    remarks = models.TextField(
        blank=True,
        default="",
        verbose_name="Remarks",
    )
    changed_at = models.DateTimeField(
        verbose_name="Changed At",
    )

    class Meta:
        verbose_name = "Complaint Status History"
        verbose_name_plural = "Complaint Status History"
        ordering = ["id"]

    def __str__(self):
        return f"Complaint #{self.complaint_id} → {self.status} by {self.role}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise DomainError("Status history entries cannot be modified.")
        super().save(*args, **kwargs)


class ComplaintComment(models.Model):
    """A comment left on a complaint by its reporter."""

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="comments",
        verbose_name="Complaint",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="complaint_comments",
        verbose_name="Author",
    )
    text = models.TextField(verbose_name="Text")
    created_at = models.DateTimeField(verbose_name="Created At")

    class Meta:
        verbose_name = "Complaint Comment"
        verbose_name_plural = "Complaint Comments"
        ordering = ["id"]

    def __str__(self):
        return f"Comment by {self.author} on complaint #{self.complaint_id}"
