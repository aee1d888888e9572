"""
Bookings app: massage service requests.

A ServiceRequest is created when a customer books a therapist. Pricing
(RubGo service fee and therapist earnings) is computed on save. Once the
request is completed and paid it becomes eligible for the weekly
settlement run in the payments app, which flips payout_processed exactly
once.

Related apps:
    - payments: Payment ledger and weekly settlement

Usage:
    from bookings.models import ServiceRequest

    ServiceRequest.objects.settleable(as_of=timezone.now())
"""
