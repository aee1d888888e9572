"""
Payment admin configuration.

Registers the settlement ledger models with the Django admin. State
changes go through SettlementService; the admin only exposes a retry
action for payments that exhausted their transfer attempts.
"""

from django.contrib import admin, messages

from core.exceptions import BaseApplicationError
from payments.models import (
    Payment,
    PlatformFeeTransfer,
    SettlementRun,
    TherapistPayoutAccount,
)
from payments.services import SettlementService
from payments.state_machines import PaymentState

__all__ = [
    "PaymentAdmin",
    "PlatformFeeTransferAdmin",
    "SettlementRunAdmin",
    "TherapistPayoutAccountAdmin",
]


@admin.register(TherapistPayoutAccount)
class TherapistPayoutAccountAdmin(admin.ModelAdmin):
    """
    Admin configuration for TherapistPayoutAccount.

    Provides visibility into which therapists can receive payouts.
    """

    list_display = [
        "therapist_id",
        "stripe_account_id",
        "payouts_enabled",
        "created_at",
    ]
    list_filter = ["payouts_enabled"]
    search_fields = ["therapist_id", "stripe_account_id"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Payments are created by the settlement run and should not be
    edited by hand.
    """

    list_display = [
        "id",
        "therapist_id",
        "earnings_display",
        "fee_display",
        "status",
        "transfer_attempts",
        "payout_date",
        "processed_date",
    ]
    list_filter = ["status", "currency", "payout_date"]
    search_fields = ["id", "therapist_id", "transfer_reference", "request__id"]
    readonly_fields = [
        "id",
        "therapist_id",
        "request",
        "fee_transfer",
        "base_price",
        "travel_fee",
        "rubgo_service_fee",
        "therapist_earnings",
        "total_amount",
        "currency",
        "status",
        "payment_date",
        "payout_date",
        "processed_date",
        "transfer_reference",
        "transfer_attempts",
        "last_error",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "payout_date"
    ordering = ["-created_at"]
    actions = ["retry_failed"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "therapist_id", "request", "status"),
            },
        ),
        (
            "Amount",
            {
                "fields": (
                    "base_price",
                    "travel_fee",
                    "total_amount",
                    "rubgo_service_fee",
                    "therapist_earnings",
                    "currency",
                ),
            },
        ),
        (
            "Transfer",
            {
                "fields": (
                    "transfer_reference",
                    "transfer_attempts",
                    "last_error",
                    "fee_transfer",
                ),
            },
        ),
        (
            "Dates",
            {
                "fields": ("payment_date", "payout_date", "processed_date"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def earnings_display(self, obj: Payment) -> str:
        return f"R{obj.therapist_earnings:.2f}"

    earnings_display.short_description = "Earnings"

    def fee_display(self, obj: Payment) -> str:
        return f"R{obj.rubgo_service_fee:.2f}"

    fee_display.short_description = "Service fee"

    @admin.action(description="Retry selected failed payments")
    def retry_failed(self, request, queryset):
        """Move FAILED payments back to PENDING for the next settlement run."""
        retried = 0
        for payment_id in queryset.filter(status=PaymentState.FAILED).values_list(
            "id", flat=True
        ):
            try:
                SettlementService.retry_payment(payment_id)
            except BaseApplicationError as e:
                self.message_user(request, e.message, level=messages.WARNING)
                continue
            retried += 1
        self.message_user(request, f"Queued {retried} payments for retry.")

    def has_add_permission(self, request) -> bool:
        """Payments are only created by the settlement run."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payments (audit trail)."""
        return False


class PaymentInline(admin.TabularInline):
    """Inline display of payments carried by a fee transfer."""

    model = Payment
    fk_name = "fee_transfer"
    extra = 0
    fields = ["id", "therapist_id", "rubgo_service_fee", "status"]
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(PlatformFeeTransfer)
class PlatformFeeTransferAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "settlement_run",
        "amount",
        "currency",
        "status",
        "attempts",
        "completed_at",
    ]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "transfer_reference"]
    readonly_fields = [
        "id",
        "settlement_run",
        "amount",
        "currency",
        "status",
        "transfer_reference",
        "attempts",
        "last_error",
        "completed_at",
        "metadata",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    inlines = [PaymentInline]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(SettlementRun)
class SettlementRunAdmin(admin.ModelAdmin):
    """
    Admin configuration for SettlementRun.

    Provides visibility into settlement run history and results.
    Runs are created by the settlement service and should not be
    manually modified.
    """

    list_display = [
        "id",
        "as_of",
        "started_at",
        "status",
        "duration_display",
        "requests_discovered",
        "payments_created",
        "payouts_completed",
        "payout_failures",
        "total_payouts",
        "total_fees",
        "fee_transfer_failed",
    ]
    list_filter = ["status", "fee_transfer_failed", "started_at"]
    search_fields = ["id"]
    readonly_fields = [
        "id",
        "as_of",
        "created_at",
        "updated_at",
        "started_at",
        "completed_at",
        "duration_display",
        "requests_discovered",
        "payments_created",
        "materialization_failures",
        "payouts_completed",
        "payout_failures",
        "total_payouts",
        "total_fees",
        "fee_transfer_failed",
        "status",
        "error_message",
    ]
    date_hierarchy = "started_at"
    ordering = ["-started_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "as_of", "status", "duration_display"),
            },
        ),
        (
            "Results Summary",
            {
                "fields": (
                    "requests_discovered",
                    "payments_created",
                    "materialization_failures",
                    "payouts_completed",
                    "payout_failures",
                    "total_payouts",
                    "total_fees",
                    "fee_transfer_failed",
                ),
            },
        ),
        (
            "Timing",
            {
                "fields": ("started_at", "completed_at"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def duration_display(self, obj: SettlementRun) -> str:
        """Display the run duration in human-readable format."""
        if obj.duration_seconds is not None:
            return f"{obj.duration_seconds:.1f}s"
        return "Running..."

    duration_display.short_description = "Duration"

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for settlement runs (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        return False
