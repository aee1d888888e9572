"""
Tests for the ServiceRequest model and its queryset.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from bookings.models import SETTLEMENT_WINDOW, ServiceRequest
from bookings.states import PaymentStatus, RequestStatus
from bookings.tests.factories import ServiceRequestFactory


@pytest.mark.django_db
class TestServiceRequestPricing:
    """Fee fields are derived on save."""

    def test_fees_computed_on_create(self):
        request = ServiceRequestFactory(
            base_price=Decimal("400.00"),
            travel_fee=Decimal("50.00"),
            discount_amount=Decimal("0.00"),
        )
        request.refresh_from_db()

        assert request.rubgo_service_fee == Decimal("54.00")
        assert request.therapist_earnings == Decimal("396.00")
        assert request.total_price == Decimal("450.00")

    def test_default_travel_fee_is_fifty_rand(self):
        request = ServiceRequestFactory(travel_fee=Decimal("50.00"))

        assert ServiceRequest._meta.get_field("travel_fee").default == Decimal("50.00")
        assert request.total_price == request.base_price + Decimal("50.00")

    def test_fees_recomputed_when_price_changes(self):
        request = ServiceRequestFactory(base_price=Decimal("400.00"))

        request.discount_amount = Decimal("50.00")
        request.save()
        request.refresh_from_db()

        assert request.total_price == Decimal("400.00")
        assert request.rubgo_service_fee == Decimal("48.00")
        assert request.therapist_earnings == Decimal("352.00")

    def test_partial_save_with_price_field_updates_fees(self):
        request = ServiceRequestFactory(base_price=Decimal("400.00"))

        request.base_price = Decimal("500.00")
        request.save(update_fields=["base_price"])
        request.refresh_from_db()

        assert request.total_price == Decimal("550.00")
        assert request.rubgo_service_fee == Decimal("66.00")

    def test_partial_save_of_flag_leaves_fees_alone(self):
        request = ServiceRequestFactory()
        original_fee = request.rubgo_service_fee

        request.payout_processed = True
        request.save(update_fields=["payout_processed", "updated_at"])
        request.refresh_from_db()

        assert request.payout_processed is True
        assert request.rubgo_service_fee == original_fee


@pytest.mark.django_db
class TestSettleableQuerySet:
    """ServiceRequest.objects.settleable discovery filter."""

    def test_selects_completed_paid_unsettled_recent(self):
        now = timezone.now()
        request = ServiceRequestFactory(created_at=now - timedelta(days=2))

        assert list(ServiceRequest.objects.settleable(now)) == [request]

    def test_excludes_already_processed(self):
        now = timezone.now()
        ServiceRequestFactory(payout_processed=True)

        assert not ServiceRequest.objects.settleable(now).exists()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"status": RequestStatus.IN_PROGRESS},
            {"status": RequestStatus.CANCELLED},
            {"payment_status": PaymentStatus.PENDING},
            {"payment_status": PaymentStatus.REFUNDED},
        ],
    )
    def test_excludes_unfinished_or_unpaid(self, overrides):
        ServiceRequestFactory(**overrides)

        assert not ServiceRequest.objects.settleable(timezone.now()).exists()

    def test_window_is_seven_days_back_from_as_of(self):
        as_of = timezone.now()
        inside = ServiceRequestFactory(created_at=as_of - SETTLEMENT_WINDOW)
        ServiceRequestFactory(
            created_at=as_of - SETTLEMENT_WINDOW - timedelta(seconds=1)
        )

        assert list(ServiceRequest.objects.settleable(as_of)) == [inside]

    def test_is_settleable_property(self):
        request = ServiceRequestFactory()
        assert request.is_settleable is True

        request.payout_processed = True
        assert request.is_settleable is False
