"""
Factory Boy factories for booking test data.

Usage:
    from bookings.tests.factories import ServiceRequestFactory

    # Completed, paid booking ready for settlement
    request = ServiceRequestFactory(base_price=Decimal("400.00"))

    # A booking still in progress
    request = ServiceRequestFactory(status=RequestStatus.IN_PROGRESS)
"""

from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone

from bookings.models import ServiceRequest
from bookings.states import PaymentMethod, PaymentStatus, RequestStatus


class ServiceRequestFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating ServiceRequest instances.

    Default creates a COMPLETED, PAID R400 booking with the R50 travel fee,
    created one day ago, not yet settled.
    """

    class Meta:
        model = ServiceRequest
        skip_postgeneration_save = True

    customer_id = factory.Sequence(lambda n: f"cust_{n}")
    therapist_id = factory.Sequence(lambda n: f"ther_{n}")
    service_type = "swedish"
    duration_minutes = 60
    scheduled_time = factory.LazyFunction(lambda: timezone.now() - timedelta(days=1))
    status = RequestStatus.COMPLETED
    payment_status = PaymentStatus.PAID
    payment_method = PaymentMethod.CREDIT_CARD
    base_price = Decimal("400.00")
    travel_fee = Decimal("50.00")
    discount_amount = Decimal("0.00")
    created_at = factory.LazyFunction(lambda: timezone.now() - timedelta(days=1))
