"""
Abstract base models shared by the domain apps.

Base Classes:
    BaseModel: Abstract model with created_at/updated_at timestamps

Mixins live in core.model_mixins.

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class Payment(UUIDPrimaryKeyMixin, BaseModel):
        therapist_id = models.CharField(max_length=64)

Note:
    List mixins before BaseModel in the bases.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Abstract model providing creation and modification timestamps.

    Fields:
        created_at: Set once when the row is inserted
        updated_at: Refreshed on every save

    Subclasses that need to control creation time (for example bookings
    imported with their original timestamp) may redeclare created_at.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
