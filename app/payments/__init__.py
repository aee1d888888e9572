"""
Payments app: the settlement ledger and the weekly payout run.

This app handles:
- Payment rows materialized from completed, paid bookings
- Therapist transfers and the platform fee sweep through a PayoutGateway
- Settlement run history and the celery-beat schedule
- Admin API for payment history, retries and manual runs

Related apps:
    - bookings: ServiceRequest and the fee split being settled

Usage:
    from payments.services import SettlementService

    result = SettlementService.run_weekly_settlement()
"""
