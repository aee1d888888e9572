"""
Model mixins combined with core.models.BaseModel.

Available Mixins:
    UUIDPrimaryKeyMixin: UUID primary key
    MetadataMixin: Free-form JSON metadata column

Usage:
    class SettlementRun(UUIDPrimaryKeyMixin, BaseModel):
        ...

    class PlatformFeeTransfer(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
        ...
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use a UUID primary key instead of an auto-increment integer.

    Booking and payment identifiers are exposed to the dashboard and to
    the payout gateway (idempotency keys), so they must not be guessable
    or collide across environments.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class MetadataMixin(models.Model):
    """
    Flexible JSON storage for provider responses and operator notes.

    Fields:
        metadata: JSON object, defaults to {}
    """

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata for extensibility",
    )

    class Meta:
        abstract = True

    def set_metadata(self, key: str, value) -> None:
        """Set a single metadata key (caller saves)."""
        if self.metadata is None:
            self.metadata = {}
        self.metadata[key] = value
