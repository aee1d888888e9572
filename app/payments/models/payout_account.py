"""
TherapistPayoutAccount model for Stripe Connect payouts.

Maps an external therapist_id to the Stripe Connected Account that
receives their weekly earnings. The Stripe payout gateway looks accounts
up here before transferring.

Usage:
    from payments.models import TherapistPayoutAccount

    TherapistPayoutAccount.objects.create(
        therapist_id="ther_42",
        stripe_account_id="acct_1234567890",
        payouts_enabled=True,
    )
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel


class TherapistPayoutAccount(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    A therapist's Stripe Connected Account.

    Fields:
        therapist_id: External therapist reference (unique)
        stripe_account_id: Stripe Account ID (acct_xxx)
        payouts_enabled: Whether Stripe has enabled payouts for the account
    """

    therapist_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="Therapist this payout account belongs to",
    )
    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Account ID (acct_xxx)",
    )
    payouts_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled payouts for this account",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Therapist Payout Account"
        verbose_name_plural = "Therapist Payout Accounts"

    def __str__(self) -> str:
        return f"TherapistPayoutAccount({self.therapist_id}, {self.stripe_account_id})"

    @property
    def is_ready_for_payouts(self) -> bool:
        return self.payouts_enabled and bool(self.stripe_account_id)
