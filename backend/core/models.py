"""
Core app models.

Provides abstract base models shared by every app.
"""

from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides ``created_at`` and ``updated_at``
    timestamp fields for every concrete child model.

    Both default to the wall clock.  Service layers that run on an
    injected clock stamp them explicitly (see ``touch``), so creation and
    last-update times line up with every other timestamp they write.
    """

    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True

    def touch(self, moment=None):
        """Set ``updated_at`` to ``moment`` (wall clock when omitted)."""
        self.updated_at = moment or timezone.now()
