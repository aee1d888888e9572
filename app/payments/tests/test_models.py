"""
Tests for settlement ledger models.

Tests constraints, defaults, managers and querysets for Payment,
PlatformFeeTransfer, SettlementRun and TherapistPayoutAccount.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError
from django.utils import timezone

from bookings.tests.factories import ServiceRequestFactory
from payments.models import (
    Payment,
    PlatformFeeTransfer,
    SettlementRun,
    TherapistPayoutAccount,
)
from payments.state_machines import FeeTransferState, PaymentState, SettlementRunStatus
from payments.tests.factories import (
    PaymentFactory,
    PlatformFeeTransferFactory,
    SettlementRunFactory,
    TherapistPayoutAccountFactory,
)


# =============================================================================
# Payment Tests
# =============================================================================


class TestPaymentModel:
    def test_create_for_request_copies_price_split(self, db, settings):
        settings.PAYOUT_CURRENCY = "zar"
        service_request = ServiceRequestFactory(
            base_price=Decimal("400.00"),
            travel_fee=Decimal("50.00"),
        )
        now = timezone.now()

        payment = Payment.objects.create_for_request(service_request, now=now)

        assert isinstance(payment.pk, uuid.UUID)
        assert payment.request_id == service_request.id
        assert payment.therapist_id == service_request.therapist_id
        assert payment.base_price == Decimal("400.00")
        assert payment.travel_fee == Decimal("50.00")
        assert payment.rubgo_service_fee == Decimal("54.00")
        assert payment.therapist_earnings == Decimal("396.00")
        assert payment.total_amount == Decimal("450.00")
        assert payment.currency == "zar"
        assert payment.status == PaymentState.PENDING
        assert payment.payment_date == now
        assert payment.payout_date == now
        assert payment.processed_date is None
        assert payment.is_consistent

    def test_total_amount_is_request_total_price(self, db):
        """A discount reduces total_amount below base price plus travel fee."""
        service_request = ServiceRequestFactory(
            base_price=Decimal("400.00"),
            travel_fee=Decimal("50.00"),
            discount_amount=Decimal("100.00"),
        )

        payment = Payment.objects.create_for_request(service_request)

        assert payment.total_amount == Decimal("350.00")
        assert payment.rubgo_service_fee + payment.therapist_earnings == Decimal("350.00")

    def test_one_payment_per_request(self, db, pending_payment):
        with pytest.raises(IntegrityError):
            Payment.objects.create_for_request(pending_payment.request)

    def test_transfer_reference_unique(self, db):
        PaymentFactory(status=PaymentState.COMPLETED, transfer_reference="tr_dup")

        with pytest.raises(IntegrityError):
            PaymentFactory(status=PaymentState.COMPLETED, transfer_reference="tr_dup")

    def test_negative_earnings_rejected(self, db):
        with pytest.raises(IntegrityError):
            PaymentFactory(therapist_earnings=Decimal("-1.00"))

    def test_str(self, pending_payment):
        assert "pending" in str(pending_payment)
        assert "R396.00" in str(pending_payment)


class TestPaymentQuerySet:
    def test_pending_and_completed(self, pending_payment, completed_payment):
        assert list(Payment.objects.pending()) == [pending_payment]
        assert list(Payment.objects.completed()) == [completed_payment]

    def test_for_therapist(self, db):
        mine = PaymentFactory(request__therapist_id="ther_mine")
        PaymentFactory(request__therapist_id="ther_other")

        assert list(Payment.objects.for_therapist("ther_mine")) == [mine]

    def test_executable_includes_pending_and_stuck_processing(
        self, pending_payment, processing_payment, completed_payment, failed_payment
    ):
        stuck = PaymentFactory()
        stuck.start_transfer()
        stuck.save()
        Payment.objects.filter(pk=stuck.pk).update(
            updated_at=timezone.now() - timedelta(hours=2)
        )

        executable = Payment.objects.executable(
            stuck_before=timezone.now() - timedelta(hours=1)
        )

        assert set(executable.values_list("id", flat=True)) == {
            pending_payment.id,
            stuck.id,
        }


# =============================================================================
# PlatformFeeTransfer Tests
# =============================================================================


class TestPlatformFeeTransferModel:
    def test_defaults(self, pending_fee_transfer):
        assert pending_fee_transfer.status == FeeTransferState.PENDING
        assert pending_fee_transfer.attempts == 0
        assert pending_fee_transfer.transfer_reference is None
        assert pending_fee_transfer.currency == "zar"

    def test_amount_must_be_positive(self, db):
        with pytest.raises(IntegrityError):
            PlatformFeeTransferFactory(amount=Decimal("0.00"))

    def test_outstanding_excludes_completed(
        self, pending_fee_transfer, failed_fee_transfer
    ):
        done = PlatformFeeTransferFactory()
        done.complete(reference="po_done")
        done.save()

        outstanding = set(
            PlatformFeeTransfer.objects.outstanding().values_list("id", flat=True)
        )

        assert outstanding == {pending_fee_transfer.id, failed_fee_transfer.id}


# =============================================================================
# SettlementRun Tests
# =============================================================================


class TestSettlementRunModel:
    def test_defaults(self, db):
        run = SettlementRunFactory()

        assert run.status == SettlementRunStatus.RUNNING
        assert run.started_at is not None
        assert run.completed_at is None
        assert run.total_payouts == Decimal("0.00")
        assert run.duration_seconds is None

    def test_mark_completed(self, db):
        run = SettlementRunFactory()
        run.mark_completed()

        run.refresh_from_db()
        assert run.status == SettlementRunStatus.COMPLETED
        assert run.completed_at is not None
        assert run.duration_seconds >= 0

    def test_mark_failed(self, db):
        run = SettlementRunFactory()
        run.mark_failed("database unavailable")

        run.refresh_from_db()
        assert run.status == SettlementRunStatus.FAILED
        assert run.error_message == "database unavailable"

    def test_ordered_newest_first(self, db):
        older = SettlementRunFactory(started_at=timezone.now() - timedelta(days=7))
        newer = SettlementRunFactory()

        assert list(SettlementRun.objects.all()) == [newer, older]


# =============================================================================
# TherapistPayoutAccount Tests
# =============================================================================


class TestTherapistPayoutAccountModel:
    def test_ready_for_payouts(self, payout_account):
        assert payout_account.is_ready_for_payouts

    def test_not_ready_when_payouts_disabled(self, db):
        account = TherapistPayoutAccountFactory(payouts_enabled=False)

        assert not account.is_ready_for_payouts

    def test_one_account_per_therapist(self, payout_account):
        with pytest.raises(IntegrityError):
            TherapistPayoutAccount.objects.create(
                therapist_id=payout_account.therapist_id,
                stripe_account_id="acct_other",
            )
