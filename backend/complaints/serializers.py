"""
Complaints app serializers.

Serializers handle field definitions, read/write constraints, and
field-level validation only.  **No workflow logic lives here**: every
state change is decided in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Complaint read serializers (list, detail, SLA, timeline)
3. Complaint write serializers (create, update)
4. Workflow action serializers (assignment, escalation, review, ...)
"""

from __future__ import annotations

from rest_framework import serializers

from accounts.models import Role

from .models import (
    Category,
    Complaint,
    ComplaintComment,
    ComplaintStatus,
    ComplaintStatusHistory,
    OverrideAction,
    Priority,
    SlaState,
)


def _name(user) -> str | None:
    return user.display_name if user is not None else None


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintFilterSerializer(serializers.Serializer):
    """Query parameters for ``GET /api/complaints/``."""

    status = serializers.ChoiceField(
        choices=ComplaintStatus.choices,
        required=False,
        help_text="Filter by status.",
    )
    priority = serializers.ChoiceField(
        choices=Priority.choices,
        required=False,
        help_text="Filter by priority.",
    )
    category = serializers.ChoiceField(
        choices=Category.choices,
        required=False,
        help_text="Filter by category.",
    )
    search = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=100,
        help_text="Case-insensitive match on title, description, category or area.",
    )
    overdue = serializers.BooleanField(
        required=False,
        default=False,
        help_text="Only complaints whose SLA due date has passed while still active.",
    )


# ═══════════════════════════════════════════════════════════════════
#  2. Complaint Read Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintListSerializer(serializers.ModelSerializer):
    """Compact representation for list pages."""

    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Complaint
        fields = [
            "id",
            "title",
            "category",
            "area",
            "status",
            "status_display",
            "priority",
            "sla_due_by",
            "sla_escalation_level",
            "created_at",
        ]
        read_only_fields = fields


class ComplaintStatusHistorySerializer(serializers.ModelSerializer):
    """Read-only status history entry."""

    changed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = ComplaintStatusHistory
        fields = [
            "id",
            "status",
            "changed_by",
            "changed_by_name",
            "role",
            "remarks",
            "changed_at",
        ]
        read_only_fields = fields

    def get_changed_by_name(self, obj: ComplaintStatusHistory) -> str | None:
        return _name(obj.changed_by)


class ComplaintCommentSerializer(serializers.ModelSerializer):
    author_name = serializers.SerializerMethodField()

    class Meta:
        model = ComplaintComment
        fields = ["id", "author", "author_name", "text", "created_at"]
        read_only_fields = fields

    def get_author_name(self, obj: ComplaintComment) -> str:
        return _name(obj.author)


class ComplaintDetailSerializer(serializers.ModelSerializer):
    """
    Full complaint with nested history and comments.

    SLA status and allowed transitions depend on the clock and the
    viewer, so the view adds them next to this payload.
    """

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    reporter_name = serializers.SerializerMethodField()
    assigned_supervisor_name = serializers.SerializerMethodField()
    assigned_officer_name = serializers.SerializerMethodField()
    status_history = ComplaintStatusHistorySerializer(many=True, read_only=True)
    comments = ComplaintCommentSerializer(many=True, read_only=True)

    class Meta:
        model = Complaint
        fields = [
            "id",
            "reporter",
            "reporter_name",
            "title",
            "description",
            "category",
            "area",
            "status",
            "status_display",
            "priority",
            "assigned_supervisor",
            "assigned_supervisor_name",
            "assigned_officer",
            "assigned_officer_name",
            "remarks",
            "citizen_images",
            "supervisor_image",
            "officer_image",
            "sla_assigned_at",
            "sla_due_by",
            "sla_escalated_at",
            "sla_escalation_level",
            "resolved_at",
            "withdrawn_at",
            "resolved_by_admin",
            "rejected_by_admin",
            "status_history",
            "comments",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_reporter_name(self, obj: Complaint) -> str:
        return _name(obj.reporter)

    def get_assigned_supervisor_name(self, obj: Complaint) -> str | None:
        return _name(obj.assigned_supervisor)

    def get_assigned_officer_name(self, obj: Complaint) -> str | None:
        return _name(obj.assigned_officer)


class SlaSnapshotSerializer(serializers.Serializer):
    state = serializers.ChoiceField(choices=SlaState.choices, read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)
    days_overdue = serializers.IntegerField(read_only=True)
    due_by = serializers.DateTimeField(read_only=True, allow_null=True)
    escalation_level = serializers.IntegerField(read_only=True)
    escalated_at = serializers.DateTimeField(read_only=True, allow_null=True)


class TimelineEventSerializer(serializers.Serializer):
    event = serializers.CharField(read_only=True)
    at = serializers.DateTimeField(read_only=True)
    description = serializers.CharField(read_only=True)
    actor_id = serializers.IntegerField(read_only=True, allow_null=True)


class AllowedTransitionsSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ComplaintStatus.choices, read_only=True)
    allowed = serializers.ListField(child=serializers.CharField(), read_only=True)


# ═══════════════════════════════════════════════════════════════════
#  3. Complaint Write Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintCreateSerializer(serializers.Serializer):
    """Request body for ``POST /api/complaints/``."""

    title = serializers.CharField(max_length=255)
    description = serializers.CharField()
    category = serializers.ChoiceField(choices=Category.choices)
    area = serializers.CharField(max_length=255)
    images = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False,
        default=list,
        help_text="Image references uploaded by the citizen.",
    )


class ComplaintUpdateSerializer(serializers.Serializer):
    """
    Request body for ``PATCH /api/complaints/{id}/``.

    Every field is optional; only supplied fields reach the service.
    """

    status = serializers.ChoiceField(choices=ComplaintStatus.choices, required=False)
    remarks = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(choices=Priority.choices, required=False)
    category = serializers.ChoiceField(choices=Category.choices, required=False)
    due_by = serializers.DateTimeField(required=False)
    supervisor_image = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Supply at least one field to update.")
        return attrs


class ComplaintEditSerializer(serializers.Serializer):
    """
    Citizen request body for ``PATCH /api/complaints/{id}/``.

    Accepted only while the complaint is CREATED.
    """

    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False)
    category = serializers.ChoiceField(choices=Category.choices, required=False)
    area = serializers.CharField(max_length=255, required=False)
    images = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False,
        help_text="Replaces the citizen images.",
    )

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Supply at least one field to update.")
        return attrs


# ═══════════════════════════════════════════════════════════════════
#  4. Workflow Action Serializers
# ═══════════════════════════════════════════════════════════════════


class AssignSupervisorSerializer(serializers.Serializer):
    supervisor_id = serializers.IntegerField(min_value=1, help_text="PK of an active supervisor.")


class AssignOfficerSerializer(serializers.Serializer):
    officer_id = serializers.IntegerField(min_value=1, help_text="PK of an active officer.")


class ReassignSerializer(serializers.Serializer):
    assignee_id = serializers.IntegerField(min_value=1)
    assignee_role = serializers.ChoiceField(
        choices=[(Role.SUPERVISOR, "Supervisor"), (Role.OFFICER, "Officer")],
    )
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class EscalateSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    level = serializers.IntegerField(required=False, min_value=1, default=1)


class OverrideSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=OverrideAction.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class ResolutionSubmitSerializer(serializers.Serializer):
    images = serializers.ListField(
        child=serializers.CharField(max_length=500),
        allow_empty=True,
        help_text="Proof-of-work image references; the first one is kept.",
    )
    remarks = serializers.CharField(required=False, allow_blank=True, default="")


class ReviewSerializer(serializers.Serializer):
    remarks = serializers.CharField(required=False, allow_blank=True, default="")


class CommentCreateSerializer(serializers.Serializer):
    text = serializers.CharField(allow_blank=True)
