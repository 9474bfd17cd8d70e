"""
Accounts app models.

Defines the closed ``Role`` enumeration and a custom User model that
extends Django's ``AbstractUser``.  Credential storage and login are
Django's own; the complaint core only reads ``role`` and ``is_active``.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class Role(models.TextChoices):
    """
    The four actors of the complaint workflow.

    Citizens file complaints, supervisors route and verify them,
    officers resolve them, admins can override everything.
    """

    CITIZEN = "CITIZEN", "Citizen"
    OFFICER = "OFFICER", "Officer"
    SUPERVISOR = "SUPERVISOR", "Supervisor"
    ADMIN = "ADMIN", "Admin"


class User(AbstractUser):
    """
    Custom user model for the complaints system.

    Each user holds exactly **one** role.  Self-registered users are
    citizens; staff accounts are created with the appropriate role by an
    administrator.  Deactivated users (``is_active=False``) can no longer
    receive assignments.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CITIZEN,
        db_index=True,
        verbose_name="Role",
    )

    # Fields required when creating a superuser via CLI
    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    # ── Helper predicates for role checks ────────────────────────────

    def has_role(self, *roles: str) -> bool:
        """Check if the user's role is one of ``roles``."""
        return self.role in roles

    @property
    def display_name(self) -> str:
        """Full name when set, otherwise the username."""
        return self.get_full_name() or self.username
