"""
Shared QuerySet helpers.

- BaseQuerySet: chainable time-window and ordering helpers for BaseModel
  subclasses

Usage:
    class ServiceRequestQuerySet(BaseQuerySet):
        def completed(self):
            return self.filter(status="completed")

    class ServiceRequest(BaseModel):
        objects = ServiceRequestQuerySet.as_manager()

    ServiceRequest.objects.created_since(cutoff).completed().oldest()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models

if TYPE_CHECKING:
    from datetime import datetime


class BaseQuerySet(models.QuerySet):
    """
    QuerySet with common filters for models exposing created_at.

    Methods:
        created_since(start): created_at >= start
        created_between(start, end): start <= created_at <= end
        stale(before): updated_at < before
        oldest(): order by created_at ascending
    """

    def created_since(self, start: datetime) -> BaseQuerySet:
        """Filter records created at or after start (inclusive)."""
        return self.filter(created_at__gte=start)

    def created_between(self, start: datetime, end: datetime) -> BaseQuerySet:
        """Filter records created within [start, end]."""
        return self.filter(created_at__gte=start, created_at__lte=end)

    def stale(self, before: datetime) -> BaseQuerySet:
        """Filter records not modified since before."""
        return self.filter(updated_at__lt=before)

    def oldest(self) -> BaseQuerySet:
        """Order oldest first."""
        return self.order_by("created_at")
