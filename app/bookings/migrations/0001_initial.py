import decimal
import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ServiceRequest",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "customer_id",
                    models.CharField(
                        db_index=True,
                        help_text="Customer who booked the service",
                        max_length=64,
                    ),
                ),
                (
                    "therapist_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Therapist assigned to the request",
                        max_length=64,
                        null=True,
                    ),
                ),
                ("service_type", models.CharField(max_length=100)),
                ("duration_minutes", models.PositiveIntegerField()),
                ("scheduled_time", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("preparation", "Preparation"),
                            ("accepted", "Accepted"),
                            ("in-progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                            ("no-show", "No Show"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("base_price", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "travel_fee",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("50.00"),
                        help_text="Call-out fee (R50 by default)",
                        max_digits=12,
                    ),
                ),
                (
                    "discount_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        max_digits=12,
                    ),
                ),
                ("loyalty_points_used", models.PositiveIntegerField(default=0)),
                (
                    "rubgo_service_fee",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        help_text="Platform fee, computed on save",
                        max_digits=12,
                    ),
                ),
                (
                    "therapist_earnings",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        help_text="Therapist share, computed on save",
                        max_digits=12,
                    ),
                ),
                (
                    "total_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        help_text="Amount charged to the customer, computed on save",
                        max_digits=12,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("credit-card", "Credit Card"),
                            ("debit-card", "Debit Card"),
                            ("paypal", "PayPal"),
                            ("bank-transfer", "Bank Transfer"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "payout_processed",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        help_text="Set once the weekly settlement created a Payment for this request",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        help_text="When the booking was made",
                    ),
                ),
            ],
            options={
                "verbose_name": "Service Request",
                "verbose_name_plural": "Service Requests",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=[
                            "status",
                            "payment_status",
                            "payout_processed",
                            "created_at",
                        ],
                        name="booking_settleable_idx",
                    )
                ],
            },
        ),
    ]
