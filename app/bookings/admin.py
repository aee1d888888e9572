"""
Bookings admin configuration.
"""

from django.contrib import admin

from bookings.models import ServiceRequest


@admin.register(ServiceRequest)
class ServiceRequestAdmin(admin.ModelAdmin):
    """
    Admin configuration for ServiceRequest.

    Computed price fields and the settlement flag are read-only: the fee
    split is derived on save and payout_processed belongs to the
    settlement run.
    """

    list_display = [
        "id",
        "therapist_id",
        "customer_id",
        "service_type",
        "status",
        "payment_status",
        "total_price",
        "payout_processed",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "payout_processed", "payment_method"]
    search_fields = ["id", "therapist_id", "customer_id"]
    readonly_fields = [
        "id",
        "rubgo_service_fee",
        "therapist_earnings",
        "total_price",
        "payout_processed",
        "updated_at",
    ]
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": (
                    "id",
                    "customer_id",
                    "therapist_id",
                    "service_type",
                    "duration_minutes",
                    "scheduled_time",
                    "status",
                ),
            },
        ),
        (
            "Pricing",
            {
                "fields": (
                    "base_price",
                    "travel_fee",
                    "discount_amount",
                    "loyalty_points_used",
                    "rubgo_service_fee",
                    "therapist_earnings",
                    "total_price",
                ),
            },
        ),
        (
            "Payment",
            {
                "fields": (
                    "payment_status",
                    "payment_method",
                    "payout_processed",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )
