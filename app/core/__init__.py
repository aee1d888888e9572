"""
Core Application - Infrastructure & Base Classes

Generic building blocks used by the domain apps (bookings, payments).
Nothing in here knows about massages, therapists or payouts.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - MetadataMixin: Flexible JSON metadata storage

Managers (import from core.managers):
    - BaseQuerySet: created_since / created_between / stale / oldest

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError, ValidationError, ConflictError,
      ExternalServiceError
"""
