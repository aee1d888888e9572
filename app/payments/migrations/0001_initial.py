import decimal
import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SettlementRun",
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
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
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
                    "as_of",
                    models.DateTimeField(
                        help_text="Reference time; requests created within 7 days before it are settled"
                    ),
                ),
                (
                    "started_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="When this settlement run started",
                    ),
                ),
                (
                    "completed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When this settlement run completed (or failed)",
                        null=True,
                    ),
                ),
                ("requests_discovered", models.PositiveIntegerField(default=0)),
                ("payments_created", models.PositiveIntegerField(default=0)),
                ("materialization_failures", models.PositiveIntegerField(default=0)),
                ("payouts_completed", models.PositiveIntegerField(default=0)),
                ("payout_failures", models.PositiveIntegerField(default=0)),
                (
                    "total_payouts",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        help_text="Sum of therapist_earnings transferred in this run",
                        max_digits=14,
                    ),
                ),
                (
                    "total_fees",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        help_text="Sum of rubgo_service_fee over payments completed in this run",
                        max_digits=14,
                    ),
                ),
                (
                    "fee_transfer_failed",
                    models.BooleanField(
                        default=False,
                        help_text="Whether a master account transfer failed during this run",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("running", "Running"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="running",
                        help_text="Current status of this settlement run",
                        max_length=20,
                    ),
                ),
                (
                    "error_message",
                    models.TextField(
                        blank=True, help_text="Error message if the run failed"
                    ),
                ),
            ],
            options={
                "ordering": ["-started_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "started_at"],
                        name="settlement_status_started_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="TherapistPayoutAccount",
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
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
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
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON metadata for extensibility",
                    ),
                ),
                (
                    "therapist_id",
                    models.CharField(
                        help_text="Therapist this payout account belongs to",
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "stripe_account_id",
                    models.CharField(
                        help_text="Stripe Account ID (acct_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "payouts_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Whether Stripe has enabled payouts for this account",
                    ),
                ),
            ],
            options={
                "verbose_name": "Therapist Payout Account",
                "verbose_name_plural": "Therapist Payout Accounts",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PlatformFeeTransfer",
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
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
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
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON metadata for extensibility",
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "currency",
                    models.CharField(
                        default="zar",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the fee transfer (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "transfer_reference",
                    models.CharField(
                        blank=True,
                        help_text="Gateway reference for the master account transfer",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True, default="")),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "settlement_run",
                    models.ForeignKey(
                        help_text="Settlement run that accumulated these fees",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="fee_transfers",
                        to="payments.settlementrun",
                    ),
                ),
            ],
            options={
                "verbose_name": "Platform Fee Transfer",
                "verbose_name_plural": "Platform Fee Transfers",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="fee_transfer_amount_positive",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
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
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
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
                    "therapist_id",
                    models.CharField(
                        db_index=True,
                        help_text="Therapist receiving the payout",
                        max_length=64,
                    ),
                ),
                ("base_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("travel_fee", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "rubgo_service_fee",
                    models.DecimalField(decimal_places=2, max_digits=12),
                ),
                (
                    "therapist_earnings",
                    models.DecimalField(decimal_places=2, max_digits=12),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "currency",
                    models.CharField(
                        default="zar",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the payment (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "payment_date",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "payout_date",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "processed_date",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the therapist transfer succeeded",
                        null=True,
                    ),
                ),
                (
                    "transfer_reference",
                    models.CharField(
                        blank=True,
                        help_text="Gateway transfer ID (tr_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("transfer_attempts", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True, default="")),
                (
                    "fee_transfer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Platform fee transfer that carried this payment's service fee",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="payments.platformfeetransfer",
                    ),
                ),
                (
                    "request",
                    models.OneToOneField(
                        help_text="Service request this payment settles",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment",
                        to="bookings.servicerequest",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment",
                "verbose_name_plural": "Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "updated_at"],
                        name="payment_status_updated_idx",
                    ),
                    models.Index(
                        fields=["therapist_id", "status"],
                        name="payment_therapist_status_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("therapist_earnings__gte", 0)),
                        name="payment_earnings_non_negative",
                    )
                ],
            },
        ),
    ]
