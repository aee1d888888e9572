"""
Pytest fixtures for payment tests.

Provides a recording payout gateway, a mocked Redis connection for the
settlement lock, and payments in each ledger state.

Usage:
    def test_transfer(fake_gateway, pending_payment):
        SettlementService.execute_payment(pending_payment.id)
        assert len(fake_gateway.therapist_transfers) == 1
"""

import uuid
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from payments.gateways import TransferResult
from payments.services import SettlementService
from payments.state_machines import FeeTransferState, PaymentState
from payments.tests.factories import (
    PaymentFactory,
    PlatformFeeTransferFactory,
    TherapistPayoutAccountFactory,
)


# =============================================================================
# Payout Gateway Double
# =============================================================================


class FakePayoutGateway:
    """
    In-memory PayoutGateway that records every call.

    Like a real provider, a repeated idempotency key returns the original
    transfer instead of moving money again.

    Failure injection:
        gateway.fail_therapist("ther_1", GatewayUnavailableError("down"))
        gateway.fail_master(GatewayRequestError("rejected"))
    """

    def __init__(self):
        self.therapist_transfers = []
        self.master_transfers = []
        self.calls = []
        self._therapist_errors = {}
        self._master_error = None
        self._results_by_key = {}

    def fail_therapist(self, therapist_id, error):
        self._therapist_errors[therapist_id] = error

    def fail_master(self, error):
        self._master_error = error

    def heal(self):
        self._therapist_errors.clear()
        self._master_error = None

    def transfer_to_therapist(
        self, therapist_id, amount, currency, idempotency_key, metadata=None
    ):
        self.calls.append(("therapist", therapist_id, amount, idempotency_key))
        if therapist_id in self._therapist_errors:
            raise self._therapist_errors[therapist_id]
        if idempotency_key in self._results_by_key:
            return self._results_by_key[idempotency_key]

        result = TransferResult(
            reference=f"tr_{uuid.uuid4().hex[:24]}",
            amount=amount,
            currency=currency,
            destination=therapist_id,
            metadata=metadata or {},
        )
        self.therapist_transfers.append(result)
        self._results_by_key[idempotency_key] = result
        return result

    def transfer_to_master(self, amount, currency, idempotency_key, metadata=None):
        self.calls.append(("master", None, amount, idempotency_key))
        if self._master_error is not None:
            raise self._master_error
        if idempotency_key in self._results_by_key:
            return self._results_by_key[idempotency_key]

        result = TransferResult(
            reference=f"po_{uuid.uuid4().hex[:24]}",
            amount=amount,
            currency=currency,
            destination="master",
            metadata=metadata or {},
        )
        self.master_transfers.append(result)
        self._results_by_key[idempotency_key] = result
        return result

    def paid_to(self, therapist_id):
        """Total transferred to one therapist."""
        return sum(
            (t.amount for t in self.therapist_transfers if t.destination == therapist_id),
            Decimal("0.00"),
        )


@pytest.fixture
def fake_gateway():
    """Install a FakePayoutGateway on SettlementService for one test."""
    gateway = FakePayoutGateway()
    SettlementService.set_gateway(gateway)
    yield gateway
    SettlementService.set_gateway(None)


@pytest.fixture(autouse=True)
def _reset_gateway():
    yield
    SettlementService.set_gateway(None)


# =============================================================================
# Mock Redis Fixture (for lock tests)
# =============================================================================


@pytest.fixture
def mock_redis():
    """
    Mock Redis connection used by SettlementRunLock.

    The lock is free by default: SET NX succeeds and the release/extend
    scripts report ownership.
    """
    with patch("payments.locks.get_redis_connection") as mock_get_conn:
        redis_instance = MagicMock()
        redis_instance.set.return_value = True
        redis_instance.eval.return_value = 1
        mock_get_conn.return_value = redis_instance
        yield redis_instance


# =============================================================================
# Payment State Fixtures
# =============================================================================


@pytest.fixture
def pending_payment(db):
    """Create a pending payment for a R400 + R50 booking."""
    return PaymentFactory()


@pytest.fixture
def processing_payment(db):
    """Create a payment claimed for a transfer."""
    payment = PaymentFactory()
    payment.start_transfer()
    payment.save()
    return payment


@pytest.fixture
def completed_payment(db):
    """Create a payment whose therapist transfer succeeded."""
    payment = PaymentFactory()
    payment.start_transfer()
    payment.save()
    payment.complete(reference="tr_completed")
    payment.save()
    return payment


@pytest.fixture
def failed_payment(db):
    """Create a payment that exhausted its transfer attempts."""
    return PaymentFactory(
        status=PaymentState.FAILED,
        transfer_attempts=5,
        last_error="Account closed",
    )


@pytest.fixture
def payout_account(db):
    """Create a payout-enabled Stripe account for therapist ther_stripe."""
    return TherapistPayoutAccountFactory(
        therapist_id="ther_stripe",
        stripe_account_id="acct_1234567890",
    )


# =============================================================================
# Fee Transfer Fixtures
# =============================================================================


@pytest.fixture
def pending_fee_transfer(db):
    return PlatformFeeTransferFactory()


@pytest.fixture
def failed_fee_transfer(db):
    """Create a sweep that a previous run failed to transfer."""
    return PlatformFeeTransferFactory(
        status=FeeTransferState.FAILED,
        attempts=1,
        last_error="Master account unavailable",
    )
