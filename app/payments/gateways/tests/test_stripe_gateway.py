"""
Tests for the payout gateways.

Tests cover:
- Idempotency key generation
- Stripe transfer and payout calls
- Error translation for each Stripe exception type
- Gateway selection from settings
"""

import uuid
from decimal import Decimal

import pytest
import stripe
from django.test import override_settings

from payments.exceptions import (
    GatewayRateLimitError,
    GatewayRequestError,
    GatewayTimeoutError,
    GatewayUnavailableError,
    InvalidPayoutAccountError,
)
from payments.gateways import (
    IdempotencyKeyGenerator,
    LoggingPayoutGateway,
    PayoutGateway,
    StripePayoutGateway,
    get_gateway,
    to_minor_units,
)
from payments.gateways.tests.conftest import MockStripeList
from payments.tests.factories import TherapistPayoutAccountFactory


@pytest.fixture
def stripe_account(db):
    return TherapistPayoutAccountFactory(
        therapist_id="ther_stripe",
        stripe_account_id="acct_1234567890",
    )


def transfer(gateway, therapist_id="ther_stripe", amount=Decimal("396.00")):
    return gateway.transfer_to_therapist(
        therapist_id=therapist_id,
        amount=amount,
        currency="zar",
        idempotency_key="therapist_transfer:abc:12345678",
        metadata={"payment_id": "abc"},
    )


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    def test_generate_key_format(self):
        entity_id = uuid.UUID("550e8400-e29b-41d4-a716-446655440000")

        key = IdempotencyKeyGenerator.generate("therapist_transfer", entity_id)

        operation, entity, short_hash = key.split(":")
        assert operation == "therapist_transfer"
        assert entity == str(entity_id)
        assert len(short_hash) == 8

    def test_same_entity_produces_same_key(self):
        """Every retry of one payment reuses its key."""
        entity_id = uuid.uuid4()

        assert IdempotencyKeyGenerator.generate(
            "therapist_transfer", entity_id
        ) == IdempotencyKeyGenerator.generate("therapist_transfer", entity_id)

    def test_different_operations_produce_different_keys(self):
        entity_id = uuid.uuid4()

        assert IdempotencyKeyGenerator.generate(
            "therapist_transfer", entity_id
        ) != IdempotencyKeyGenerator.generate("master_transfer", entity_id)

    def test_different_entities_produce_different_keys(self):
        assert IdempotencyKeyGenerator.generate(
            "therapist_transfer", uuid.uuid4()
        ) != IdempotencyKeyGenerator.generate("therapist_transfer", uuid.uuid4())


def test_to_minor_units():
    assert to_minor_units(Decimal("396.00")) == 39600
    assert to_minor_units(Decimal("0.01")) == 1
    assert to_minor_units(Decimal("54")) == 5400


# =============================================================================
# Gateway Selection Tests
# =============================================================================


class TestGetGateway:
    @override_settings(
        PAYOUT_GATEWAY_CLASS="payments.gateways.stripe_gateway.StripePayoutGateway"
    )
    def test_uses_configured_class(self):
        assert isinstance(get_gateway(), StripePayoutGateway)

    @override_settings(PAYOUT_GATEWAY_CLASS="")
    def test_defaults_to_logging_gateway(self):
        assert isinstance(get_gateway(), LoggingPayoutGateway)

    def test_implementations_satisfy_protocol(self):
        assert isinstance(StripePayoutGateway(), PayoutGateway)
        assert isinstance(LoggingPayoutGateway(), PayoutGateway)


class TestLoggingPayoutGateway:
    def test_transfers_return_synthetic_references(self):
        gateway = LoggingPayoutGateway()

        therapist = transfer(gateway)
        master = gateway.transfer_to_master(
            amount=Decimal("54.00"),
            currency="zar",
            idempotency_key="master_transfer:abc:12345678",
        )

        assert therapist.reference.startswith("log_tr_")
        assert therapist.amount == Decimal("396.00")
        assert master.reference.startswith("log_po_")
        assert master.destination == "master"


# =============================================================================
# StripePayoutGateway Tests
# =============================================================================


class TestStripeTransferToTherapist:
    def test_create_transfer_success(self, stripe_account, mock_stripe_transfer):
        result = transfer(StripePayoutGateway())

        assert result.reference == "tr_test123456"
        assert result.amount == Decimal("396.00")
        assert result.currency == "zar"
        assert result.destination == "acct_1234567890"
        mock_stripe_transfer.create.assert_called_once_with(
            amount=39600,
            currency="zar",
            destination="acct_1234567890",
            transfer_group="therapist_transfer:abc:12345678",
            metadata={
                "payment_id": "abc",
                "settlement_idempotency_key": "therapist_transfer:abc:12345678",
            },
            idempotency_key="therapist_transfer:abc:12345678",
        )

    def test_missing_account_rejected_before_stripe_call(
        self, db, mock_stripe_transfer
    ):
        with pytest.raises(InvalidPayoutAccountError) as exc_info:
            transfer(StripePayoutGateway(), therapist_id="ther_unknown")

        assert exc_info.value.is_retryable is False
        mock_stripe_transfer.create.assert_not_called()

    def test_disabled_account_rejected(self, db, mock_stripe_transfer):
        TherapistPayoutAccountFactory(therapist_id="ther_off", payouts_enabled=False)

        with pytest.raises(InvalidPayoutAccountError):
            transfer(StripePayoutGateway(), therapist_id="ther_off")

        mock_stripe_transfer.create.assert_not_called()

    @override_settings(STRIPE_SECRET_KEY="sk_test_custom", STRIPE_API_TIMEOUT_SECONDS=30)
    def test_uses_settings_api_key_and_timeout(
        self, stripe_account, mock_stripe_transfer, mock_stripe_http_client
    ):
        transfer(StripePayoutGateway())

        assert stripe.api_key == "sk_test_custom"
        mock_stripe_http_client.assert_called_with(timeout=30)


class TestStripeTransferToMaster:
    def test_create_payout_success(self, mock_stripe_payout):
        result = StripePayoutGateway().transfer_to_master(
            amount=Decimal("54.00"),
            currency="zar",
            idempotency_key="master_transfer:abc:12345678",
        )

        assert result.reference == "po_test123456"
        assert result.amount == Decimal("54.00")
        mock_stripe_payout.create.assert_called_once_with(
            idempotency_key="master_transfer:abc:12345678",
            amount=5400,
            currency="zar",
            metadata={"settlement_idempotency_key": "master_transfer:abc:12345678"},
        )

    @override_settings(STRIPE_MASTER_PAYOUT_DESTINATION="ba_master")
    def test_configured_destination_is_sent(self, mock_stripe_payout):
        StripePayoutGateway().transfer_to_master(
            amount=Decimal("54.00"),
            currency="zar",
            idempotency_key="master_transfer:abc:12345678",
        )

        assert mock_stripe_payout.create.call_args.kwargs["destination"] == "ba_master"


class TestStripeEarlierAttempts:
    """A retry a week later must find the first attempt, not pay again."""

    def test_existing_transfer_returned_without_create(
        self, stripe_account, mock_stripe_transfer, mock_transfer
    ):
        mock_stripe_transfer.list.return_value = MockStripeList(
            items=[mock_transfer(id="tr_first_attempt")]
        )

        result = transfer(StripePayoutGateway())

        assert result.reference == "tr_first_attempt"
        mock_stripe_transfer.list.assert_called_once_with(
            transfer_group="therapist_transfer:abc:12345678", limit=10
        )
        mock_stripe_transfer.create.assert_not_called()

    def test_reversed_transfer_is_ignored(
        self, stripe_account, mock_stripe_transfer, mock_transfer
    ):
        reversed_transfer = mock_transfer(id="tr_reversed")
        reversed_transfer.data["reversed"] = True
        mock_stripe_transfer.list.return_value = MockStripeList(
            items=[reversed_transfer]
        )

        result = transfer(StripePayoutGateway())

        assert result.reference == "tr_test123456"
        mock_stripe_transfer.create.assert_called_once()

    def test_existing_payout_matched_by_metadata(self, mock_stripe_payout, mock_payout):
        mock_stripe_payout.list.return_value = MockStripeList(
            items=[
                mock_payout(id="po_other", metadata={}),
                mock_payout(
                    id="po_first_attempt",
                    metadata={
                        "settlement_idempotency_key": "master_transfer:abc:12345678"
                    },
                ),
            ]
        )

        result = StripePayoutGateway().transfer_to_master(
            amount=Decimal("54.00"),
            currency="zar",
            idempotency_key="master_transfer:abc:12345678",
        )

        assert result.reference == "po_first_attempt"
        mock_stripe_payout.create.assert_not_called()

    def test_failed_payout_is_not_reused(self, mock_stripe_payout, mock_payout):
        mock_stripe_payout.list.return_value = MockStripeList(
            items=[
                mock_payout(
                    id="po_failed",
                    status="failed",
                    metadata={
                        "settlement_idempotency_key": "master_transfer:abc:12345678"
                    },
                ),
            ]
        )

        result = StripePayoutGateway().transfer_to_master(
            amount=Decimal("54.00"),
            currency="zar",
            idempotency_key="master_transfer:abc:12345678",
        )

        assert result.reference == "po_test123456"
        mock_stripe_payout.create.assert_called_once()

    def test_lookup_failure_is_translated(self, stripe_account, mock_stripe_transfer):
        mock_stripe_transfer.list.side_effect = stripe.APIConnectionError(
            "Network unreachable"
        )

        with pytest.raises(GatewayUnavailableError):
            transfer(StripePayoutGateway())

        mock_stripe_transfer.create.assert_not_called()


class TestStripeErrorTranslation:
    """Tests for Stripe error translation to gateway exceptions."""

    def test_invalid_account_error(self, stripe_account, mock_stripe_transfer):
        mock_stripe_transfer.create.side_effect = stripe.InvalidRequestError(
            message="No such destination account: acct_1234567890",
            param="destination",
            code="account_invalid",
        )

        with pytest.raises(InvalidPayoutAccountError) as exc_info:
            transfer(StripePayoutGateway())

        assert exc_info.value.provider_code == "account_invalid"

    def test_invalid_request_error(self, stripe_account, mock_stripe_transfer):
        mock_stripe_transfer.create.side_effect = stripe.InvalidRequestError(
            message="Insufficient funds in Stripe balance",
            param="amount",
            code="balance_insufficient",
        )

        with pytest.raises(GatewayRequestError) as exc_info:
            transfer(StripePayoutGateway())

        assert exc_info.value.is_retryable is False

    def test_rate_limit_error(self, stripe_account, mock_stripe_transfer):
        mock_stripe_transfer.create.side_effect = stripe.RateLimitError(
            message="Too many requests hit the API too quickly.",
        )

        with pytest.raises(GatewayRateLimitError) as exc_info:
            transfer(StripePayoutGateway())

        assert exc_info.value.is_retryable is True

    def test_api_connection_error(self, stripe_account, mock_stripe_transfer):
        mock_stripe_transfer.create.side_effect = stripe.APIConnectionError(
            message="Could not connect to Stripe.",
        )

        with pytest.raises(GatewayUnavailableError) as exc_info:
            transfer(StripePayoutGateway())

        assert exc_info.value.is_retryable is True

    def test_timeout_error(self, stripe_account, mock_stripe_transfer):
        mock_stripe_transfer.create.side_effect = stripe.APIConnectionError(
            message="Request timed out",
        )

        with pytest.raises(GatewayTimeoutError):
            transfer(StripePayoutGateway())

    def test_authentication_error(self, mock_stripe_payout):
        mock_stripe_payout.create.side_effect = stripe.AuthenticationError(
            message="Invalid API Key provided.",
        )

        with pytest.raises(GatewayRequestError) as exc_info:
            StripePayoutGateway().transfer_to_master(
                amount=Decimal("54.00"),
                currency="zar",
                idempotency_key="master_transfer:abc:12345678",
            )

        # Auth errors are permanent, not retryable
        assert exc_info.value.is_retryable is False

    def test_api_error(self, mock_stripe_payout):
        mock_stripe_payout.create.side_effect = stripe.APIError(
            message="Something went wrong on Stripe's end.",
        )

        with pytest.raises(GatewayUnavailableError):
            StripePayoutGateway().transfer_to_master(
                amount=Decimal("54.00"),
                currency="zar",
                idempotency_key="master_transfer:abc:12345678",
            )
