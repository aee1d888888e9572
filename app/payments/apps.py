"""
Payments app configuration.

This app provides the settlement ledger and the weekly payout run:
- Payment, PlatformFeeTransfer and SettlementRun models
- Payout gateways (Stripe Connect, logging)
- The celery-beat scheduled settlement task
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
