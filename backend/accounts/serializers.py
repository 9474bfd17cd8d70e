"""
Accounts app serializers.

Field definitions and validation only; no business logic.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import Role, User


class UserFilterSerializer(serializers.Serializer):
    """Query parameters for ``GET /api/accounts/users/``."""

    role = serializers.ChoiceField(choices=Role.choices, required=False)
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)


class UserListSerializer(serializers.ModelSerializer):
    role_display = serializers.CharField(source="get_role_display", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "role",
            "role_display",
            "is_active",
        ]
        read_only_fields = fields


class UserDetailSerializer(UserListSerializer):
    class Meta(UserListSerializer.Meta):
        fields = UserListSerializer.Meta.fields + ["date_joined", "last_login"]
        read_only_fields = fields


class ActivationSerializer(serializers.Serializer):
    """Optional justification recorded in the audit trail."""

    reason = serializers.CharField(required=False, allow_blank=True, default="")
