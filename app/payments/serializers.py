"""
DRF serializers for the payments app.

This module provides serializers for:
- Payment ledger rows
- Platform fee transfers
- Settlement run history
- Payout summary aggregates
- Manual settlement trigger requests

All ledger serializers are read-only; state changes go through
SettlementService.
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payment, PlatformFeeTransfer, SettlementRun


class PaymentSerializer(serializers.ModelSerializer):
    """
    Payment serializer for API responses.

    Usage:
        payments = Payment.objects.for_therapist("ther_42")
        serializer = PaymentSerializer(payments, many=True)
    """

    request_id = serializers.UUIDField(source="request.id", read_only=True)
    fee_transfer_id = serializers.UUIDField(
        source="fee_transfer.id", read_only=True, allow_null=True
    )

    class Meta:
        model = Payment
        fields = [
            "id",
            "request_id",
            "therapist_id",
            "base_price",
            "travel_fee",
            "total_amount",
            "rubgo_service_fee",
            "therapist_earnings",
            "currency",
            "status",
            "payment_date",
            "payout_date",
            "processed_date",
            "transfer_reference",
            "transfer_attempts",
            "last_error",
            "fee_transfer_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PlatformFeeTransferSerializer(serializers.ModelSerializer):
    payment_count = serializers.SerializerMethodField()

    class Meta:
        model = PlatformFeeTransfer
        fields = [
            "id",
            "settlement_run",
            "amount",
            "currency",
            "status",
            "transfer_reference",
            "attempts",
            "last_error",
            "completed_at",
            "payment_count",
            "created_at",
        ]
        read_only_fields = fields

    def get_payment_count(self, obj: PlatformFeeTransfer) -> int:
        return obj.payments.count()


class SettlementRunSerializer(serializers.ModelSerializer):
    """Settlement run history with counters, totals and its fee transfers."""

    duration_seconds = serializers.FloatField(read_only=True, allow_null=True)
    fee_transfers = PlatformFeeTransferSerializer(many=True, read_only=True)

    class Meta:
        model = SettlementRun
        fields = [
            "id",
            "as_of",
            "status",
            "started_at",
            "completed_at",
            "duration_seconds",
            "requests_discovered",
            "payments_created",
            "materialization_failures",
            "payouts_completed",
            "payout_failures",
            "total_payouts",
            "total_fees",
            "fee_transfer_failed",
            "error_message",
            "fee_transfers",
        ]
        read_only_fields = fields


class PayoutSummarySerializer(serializers.Serializer):
    """Serializes a reporting.PayoutSummary dataclass."""

    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    service_fees = serializers.DecimalField(max_digits=14, decimal_places=2)
    therapist_earnings = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_payouts = serializers.DecimalField(max_digits=14, decimal_places=2)
    completed_payouts = serializers.DecimalField(max_digits=14, decimal_places=2)
    failed_payouts = serializers.DecimalField(max_digits=14, decimal_places=2)
    outstanding_platform_fees = serializers.DecimalField(
        max_digits=14, decimal_places=2
    )
    payment_count = serializers.IntegerField()


class PayoutSummaryQuerySerializer(serializers.Serializer):
    since = serializers.DateTimeField(required=False)
    until = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        since = attrs.get("since")
        until = attrs.get("until")
        if since and until and since > until:
            raise serializers.ValidationError("since must not be after until")
        return attrs


class SettlementTriggerSerializer(serializers.Serializer):
    """
    Request body for a manually triggered settlement run.

    Fields:
        as_of: Optional reference time; defaults to now when the task runs.
            Values without an offset are read in TIME_ZONE.
    """

    as_of = serializers.DateTimeField(required=False)
