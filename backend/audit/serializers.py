"""
Audit app serializers.

Read-only: audit entries are never written through the API.
"""

from __future__ import annotations

from rest_framework import serializers

from accounts.models import Role

from .models import AuditAction, AuditLogEntry
from .services import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT


class AuditTrailFilterSerializer(serializers.Serializer):
    """Query parameters for ``GET /api/audit-trail/``."""

    actor = serializers.IntegerField(required=False, min_value=1, help_text="PK of the acting user.")
    complaint = serializers.IntegerField(required=False, min_value=1, help_text="PK of the complaint.")
    role = serializers.ChoiceField(choices=Role.choices, required=False)
    action = serializers.ChoiceField(choices=AuditAction.choices, required=False)
    start = serializers.DateTimeField(required=False, help_text="Entries recorded at or after.")
    end = serializers.DateTimeField(required=False, help_text="Entries recorded at or before.")
    limit = serializers.IntegerField(
        required=False,
        min_value=1,
        max_value=MAX_QUERY_LIMIT,
        default=DEFAULT_QUERY_LIMIT,
    )

    def validate(self, attrs):
        start, end = attrs.get("start"), attrs.get("end")
        if start and end and start > end:
            raise serializers.ValidationError("start must be earlier than end.")
        return attrs


class AuditLogEntrySerializer(serializers.ModelSerializer):
    actor_name = serializers.SerializerMethodField()

    class Meta:
        model = AuditLogEntry
        fields = [
            "id",
            "complaint",
            "target_user",
            "actor",
            "actor_name",
            "actor_role",
            "action",
            "old_status",
            "new_status",
            "old_escalation_level",
            "new_escalation_level",
            "remarks",
            "created_at",
        ]
        read_only_fields = fields

    def get_actor_name(self, obj: AuditLogEntry) -> str:
        return obj.actor.display_name if obj.actor is not None else "system"
