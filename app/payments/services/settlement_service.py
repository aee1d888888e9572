"""
Weekly settlement service: settles completed, paid bookings exactly once.

A run has three steps, all under a single Redis run lock:

1. Discovery: find completed, paid, unsettled requests created within
   SETTLEMENT_WINDOW before as_of.
2. Materialization: per request, create a PENDING Payment and set
   payout_processed in one transaction.
3. Execution: transfer therapist_earnings for every pending Payment (not
   only this run's), then sweep the service fees of every completed
   payment not yet swept to the master account in a single transfer.

Transfers follow a two-phase pattern:
    Phase 1: PENDING -> PROCESSING, committed
    Phase 2: gateway call OUTSIDE any transaction
    Phase 3: PROCESSING -> COMPLETED (or back to PENDING on failure)

If the process dies between phases 2 and 3 the payment stays PROCESSING;
after STUCK_PROCESSING_MINUTES a later run picks it up again and repeats
the call with the same idempotency key. The gateway finds the transfer
made by the first attempt, even after the provider has forgotten the key,
and returns it instead of paying twice.

Usage:
    from payments.services import SettlementService

    result = SettlementService.run_weekly_settlement(as_of=timezone.now())
    if result:
        summary = result.data
        print(summary.payouts_completed, summary.total_fees)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from bookings.models import ServiceRequest
from core.services import BaseService, ServiceResult

from payments.exceptions import (
    GatewayError,
    InvalidStateTransitionError,
    PaymentError,
    PaymentNotFoundError,
    SettlementError,
    SettlementLockError,
)
from payments.gateways import IdempotencyKeyGenerator, get_gateway
from payments.locks import SETTLEMENT_LOCK_KEY, SettlementRunLock
from payments.models import Payment, PlatformFeeTransfer, SettlementRun
from payments.state_machines import FeeTransferState, PaymentState

if TYPE_CHECKING:
    from typing import Any

    from payments.gateways import PayoutGateway


# =============================================================================
# Constants
# =============================================================================

# Gateway attempts before a payment is parked in FAILED for manual retry
MAX_TRANSFER_ATTEMPTS = 5

# A PROCESSING payment untouched this long was abandoned mid-transfer
STUCK_PROCESSING_MINUTES = 60


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class SettlementSummary:
    """
    Outcome of one settlement run, suitable for logging and alerting.

    Attributes:
        run_id: SettlementRun primary key
        as_of: Reference time of the run
        requests_discovered: Settleable requests found
        payments_created: Payments materialized this run
        materialization_failures: Requests left unsettled after an error
        payouts_completed: Therapist transfers that succeeded
        payout_failures: Therapist transfers that failed (payment left pending)
        total_payouts: Sum of therapist_earnings transferred
        total_fees: Sum of rubgo_service_fee over payments completed this run
        fees_swept: Amount of this run's fee transfer; includes fees of
            payments completed by an earlier run that aborted before its sweep
        fee_transfer_id: PlatformFeeTransfer created this run, if any
        fee_transfer_status: Its final status
        fee_transfers_retried: Earlier failed sweeps re-attempted
        fee_transfers_recovered: Earlier failed sweeps that succeeded now
    """

    run_id: uuid.UUID
    as_of: datetime
    requests_discovered: int = 0
    payments_created: int = 0
    materialization_failures: int = 0
    payouts_completed: int = 0
    payout_failures: int = 0
    total_payouts: Decimal = Decimal("0.00")
    total_fees: Decimal = Decimal("0.00")
    fees_swept: Decimal = Decimal("0.00")
    fee_transfer_id: uuid.UUID | None = None
    fee_transfer_status: str | None = None
    fee_transfers_retried: int = 0
    fee_transfers_recovered: int = 0

    @property
    def has_failures(self) -> bool:
        return bool(
            self.materialization_failures
            or self.payout_failures
            or self.fee_transfer_status == FeeTransferState.FAILED
            or self.fee_transfers_retried > self.fee_transfers_recovered
        )

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for task results and API responses."""
        return {
            "run_id": str(self.run_id),
            "as_of": self.as_of.isoformat(),
            "requests_discovered": self.requests_discovered,
            "payments_created": self.payments_created,
            "materialization_failures": self.materialization_failures,
            "payouts_completed": self.payouts_completed,
            "payout_failures": self.payout_failures,
            "total_payouts": str(self.total_payouts),
            "total_fees": str(self.total_fees),
            "fees_swept": str(self.fees_swept),
            "fee_transfer_id": str(self.fee_transfer_id) if self.fee_transfer_id else None,
            "fee_transfer_status": self.fee_transfer_status,
            "fee_transfers_retried": self.fee_transfers_retried,
            "fee_transfers_recovered": self.fee_transfers_recovered,
        }


# =============================================================================
# Settlement Service
# =============================================================================


class SettlementService(BaseService):
    """
    Runs the weekly settlement of therapist earnings and platform fees.

    Error Handling:
        - Run already in progress: SettlementLockError, nothing touched
        - Request store / ledger unreachable: run marked FAILED,
          SettlementError raised
        - Single request or payment failure: logged, counted in the
          summary, retried by the next run

    Usage:
        result = SettlementService.run_weekly_settlement()

        # Inject a test double
        SettlementService.set_gateway(FakePayoutGateway())
    """

    # Payout gateway - can be injected for testing
    _gateway: PayoutGateway | None = None

    @classmethod
    def get_gateway(cls) -> PayoutGateway:
        """Get the payout gateway (settings.PAYOUT_GATEWAY_CLASS by default)."""
        return cls._gateway or get_gateway()

    @classmethod
    def set_gateway(cls, gateway: PayoutGateway | None) -> None:
        """Set the payout gateway (for testing)."""
        cls._gateway = gateway

    @classmethod
    def get_currency(cls) -> str:
        return getattr(settings, "PAYOUT_CURRENCY", "zar")

    # =========================================================================
    # Entry Point
    # =========================================================================

    @classmethod
    def run_weekly_settlement(
        cls, as_of: datetime | None = None
    ) -> ServiceResult[SettlementSummary]:
        """
        Settle all eligible service requests exactly once.

        Args:
            as_of: Reference time (defaults to now). Must be timezone-aware.

        Returns:
            ServiceResult containing SettlementSummary on success, or a
            failure with error_code INVALID_AS_OF for a naive timestamp

        Raises:
            SettlementLockError: Another run holds the settlement lock
            SettlementError: Request store or ledger unreachable
        """
        as_of = as_of or timezone.now()
        if timezone.is_naive(as_of):
            return ServiceResult.failure(
                "as_of must be a timezone-aware timestamp",
                error_code="INVALID_AS_OF",
            )

        lock = SettlementRunLock()
        try:
            lock.acquire()
        except SettlementLockError:
            cls.get_logger().warning(
                "Settlement run already in progress, skipping",
                extra={"as_of": as_of.isoformat()},
            )
            raise

        try:
            return ServiceResult.success(cls._run_with_lock(as_of, lock))
        finally:
            lock.release()

    @classmethod
    def _run_with_lock(cls, as_of: datetime, lock: SettlementRunLock) -> SettlementSummary:
        logger = cls.get_logger()

        try:
            run = SettlementRun.objects.create(as_of=as_of)
        except DatabaseError as e:
            logger.error(
                "Could not record settlement run",
                extra={"as_of": as_of.isoformat()},
                exc_info=True,
            )
            raise SettlementError(
                "Settlement ledger unavailable",
                details={"as_of": as_of.isoformat(), "error": str(e)},
            ) from e

        summary = SettlementSummary(run_id=run.id, as_of=as_of)
        logger.info(
            "Starting weekly settlement",
            extra={"settlement_run_id": str(run.id), "as_of": as_of.isoformat()},
        )

        try:
            # Step A: discovery
            request_ids = cls.discover(as_of)
            summary.requests_discovered = len(request_ids)

            # Step B: materialization
            cls._materialize_all(request_ids, summary, lock)

            # Step C: execution
            cls._execute_all(summary, lock)
            cls._retry_outstanding_fee_transfers(summary)
            cls._sweep_fees(run, summary)
        except DatabaseError as e:
            logger.error(
                "Settlement run aborted: store unavailable",
                extra={"settlement_run_id": str(run.id)},
                exc_info=True,
            )
            cls._record(run, summary)
            try:
                run.mark_failed(str(e))
            except DatabaseError:
                logger.exception(
                    "Could not mark settlement run failed",
                    extra={"settlement_run_id": str(run.id)},
                )
            raise SettlementError(
                "Settlement aborted: request store or ledger unavailable",
                details={"settlement_run_id": str(run.id), "error": str(e)},
            ) from e

        cls._record(run, summary)
        run.mark_completed()

        log = logger.warning if summary.has_failures else logger.info
        log(
            f"Weekly settlement complete: {summary.payments_created} payments created, "
            f"{summary.payouts_completed} payouts, R{summary.total_payouts} paid out, "
            f"R{summary.total_fees} in fees",
            extra=summary.to_dict(),
        )
        return summary

    # =========================================================================
    # Step A: Discovery
    # =========================================================================

    @classmethod
    def discover(cls, as_of: datetime) -> list[uuid.UUID]:
        """IDs of the requests eligible for settlement at as_of."""
        return list(
            ServiceRequest.objects.settleable(as_of)
            .oldest()
            .values_list("id", flat=True)
        )

    # =========================================================================
    # Step B: Materialization
    # =========================================================================

    @classmethod
    def _materialize_all(
        cls,
        request_ids: list[uuid.UUID],
        summary: SettlementSummary,
        lock: SettlementRunLock,
    ) -> None:
        for request_id in request_ids:
            try:
                payment = cls.materialize(request_id)
            except Exception:
                summary.materialization_failures += 1
                cls.get_logger().exception(
                    "Failed to materialize payment",
                    extra={"request_id": str(request_id)},
                )
            else:
                if payment is not None:
                    summary.payments_created += 1
            lock.heartbeat()

    @classmethod
    def materialize(
        cls, request_id: uuid.UUID, now: datetime | None = None
    ) -> Payment | None:
        """
        Create the Payment for one request and mark the request processed.

        Both writes share one transaction; the request row is locked and
        re-checked first, so a request can never yield two Payments.

        Returns:
            The new Payment, or None if the request is no longer settleable

        Raises:
            PaymentError: The request has no therapist or an inconsistent
                fee split
        """
        with transaction.atomic():
            service_request = ServiceRequest.objects.select_for_update().get(
                pk=request_id
            )
            if not service_request.is_settleable:
                cls.get_logger().info(
                    "Request settled concurrently, skipping",
                    extra={"request_id": str(request_id)},
                )
                return None

            if not service_request.therapist_id:
                raise PaymentError(
                    f"ServiceRequest {request_id} has no therapist",
                    error_code="MISSING_THERAPIST",
                    details={"request_id": str(request_id)},
                )

            if (
                service_request.rubgo_service_fee + service_request.therapist_earnings
                != service_request.total_price
            ):
                raise PaymentError(
                    f"ServiceRequest {request_id} has an inconsistent fee split",
                    error_code="INCONSISTENT_FEE_SPLIT",
                    details={
                        "request_id": str(request_id),
                        "rubgo_service_fee": str(service_request.rubgo_service_fee),
                        "therapist_earnings": str(service_request.therapist_earnings),
                        "total_price": str(service_request.total_price),
                    },
                )

            payment = Payment.objects.create_for_request(service_request, now=now)
            service_request.payout_processed = True
            service_request.save(update_fields=["payout_processed", "updated_at"])

        cls.get_logger().info(
            "Payment materialized",
            extra={
                "payment_id": str(payment.id),
                "request_id": str(request_id),
                "therapist_id": payment.therapist_id,
                "therapist_earnings": str(payment.therapist_earnings),
            },
        )
        return payment

    # =========================================================================
    # Step C: Therapist Transfers
    # =========================================================================

    @classmethod
    def _execute_all(cls, summary: SettlementSummary, lock: SettlementRunLock) -> None:
        stuck_before = timezone.now() - timedelta(minutes=STUCK_PROCESSING_MINUTES)
        payment_ids = list(
            Payment.objects.executable(stuck_before)
            .oldest()
            .values_list("id", flat=True)
        )

        for payment_id in payment_ids:
            try:
                payment = cls.execute_payment(payment_id, stuck_before=stuck_before)
            except Exception:
                summary.payout_failures += 1
                cls.get_logger().exception(
                    "Unexpected error during therapist transfer",
                    extra={"payment_id": str(payment_id)},
                )
            else:
                if payment is None:
                    continue
                if payment.is_complete:
                    summary.payouts_completed += 1
                    summary.total_payouts += payment.therapist_earnings
                    summary.total_fees += payment.rubgo_service_fee
                else:
                    summary.payout_failures += 1
            lock.heartbeat()

    @classmethod
    def execute_payment(
        cls, payment_id: uuid.UUID, stuck_before: datetime | None = None
    ) -> Payment | None:
        """
        Transfer one payment's earnings to its therapist.

        Args:
            payment_id: Payment to transfer
            stuck_before: PROCESSING payments last touched before this are
                treated as abandoned and re-attempted

        Returns:
            The Payment after the attempt (COMPLETED on success), or None
            if it was no longer pending when claimed
        """
        logger = cls.get_logger()
        if stuck_before is None:
            stuck_before = timezone.now() - timedelta(minutes=STUCK_PROCESSING_MINUTES)

        # Phase 1: claim the payment
        with transaction.atomic():
            payment = Payment.objects.select_for_update().get(pk=payment_id)

            if (
                payment.status == PaymentState.PROCESSING
                and payment.updated_at < stuck_before
            ):
                logger.warning(
                    "Recovering payment stuck in PROCESSING",
                    extra={
                        "payment_id": str(payment_id),
                        "updated_at": payment.updated_at.isoformat(),
                    },
                )
                payment.release("Transfer interrupted; re-attempting")

            if payment.status != PaymentState.PENDING:
                logger.info(
                    "Payment not pending under lock, skipping",
                    extra={"payment_id": str(payment_id), "status": payment.status},
                )
                return None

            payment.start_transfer()
            payment.save()

        # Phase 2: gateway call, outside any transaction
        try:
            result = cls.get_gateway().transfer_to_therapist(
                therapist_id=payment.therapist_id,
                amount=payment.therapist_earnings,
                currency=payment.currency,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    "therapist_transfer", payment.id
                ),
                metadata={
                    "payment_id": str(payment.id),
                    "request_id": str(payment.request_id),
                },
            )
        except GatewayError as e:
            logger.warning(
                f"Therapist transfer failed: {type(e).__name__}",
                extra={
                    "payment_id": str(payment_id),
                    "therapist_id": payment.therapist_id,
                    "error": str(e),
                    "is_retryable": e.is_retryable,
                    "attempt": payment.transfer_attempts,
                },
            )
            return cls._release_or_fail(payment_id, str(e))
        except Exception as e:
            logger.exception(
                "Unexpected error during therapist transfer",
                extra={
                    "payment_id": str(payment_id),
                    "therapist_id": payment.therapist_id,
                    "attempt": payment.transfer_attempts,
                },
            )
            return cls._release_or_fail(payment_id, f"{type(e).__name__}: {e}")

        # Phase 3: record the transfer
        try:
            with transaction.atomic():
                payment = Payment.objects.select_for_update().get(pk=payment_id)
                payment.complete(reference=result.reference)
                payment.save()
        except (DatabaseError, TransitionNotAllowed):
            # The money moved but the ledger does not show it yet. The
            # payment stays PROCESSING and the stuck-payment recovery
            # repeats the call with the same idempotency key.
            logger.error(
                "Failed to record transfer after gateway success - recovery needed",
                extra={
                    "payment_id": str(payment_id),
                    "transfer_reference": result.reference,
                },
                exc_info=True,
            )
            return payment

        logger.info(
            "Therapist transfer completed",
            extra={
                "payment_id": str(payment_id),
                "therapist_id": payment.therapist_id,
                "amount": str(payment.therapist_earnings),
                "transfer_reference": result.reference,
            },
        )
        return payment

    @classmethod
    def _release_or_fail(cls, payment_id: uuid.UUID, error: str) -> Payment:
        with transaction.atomic():
            payment = Payment.objects.select_for_update().get(pk=payment_id)
            if payment.status != PaymentState.PROCESSING:
                return payment
            if payment.transfer_attempts >= MAX_TRANSFER_ATTEMPTS:
                payment.fail(error)
                cls.get_logger().error(
                    "Payment exhausted transfer attempts, needs manual retry",
                    extra={
                        "payment_id": str(payment_id),
                        "attempts": payment.transfer_attempts,
                        "error": error,
                    },
                )
            else:
                payment.release(error)
            payment.save()
        return payment

    # =========================================================================
    # Step C: Platform Fee Sweep
    # =========================================================================

    @classmethod
    def _retry_outstanding_fee_transfers(cls, summary: SettlementSummary) -> None:
        """Re-attempt earlier sweeps with their stored amounts."""
        outstanding = list(
            PlatformFeeTransfer.objects.outstanding()
            .oldest()
            .values_list("id", flat=True)
        )
        for fee_transfer_id in outstanding:
            summary.fee_transfers_retried += 1
            if cls.execute_fee_transfer(fee_transfer_id):
                summary.fee_transfers_recovered += 1

    @classmethod
    def _sweep_fees(cls, run: SettlementRun, summary: SettlementSummary) -> None:
        """
        Claim every completed payment not yet swept and transfer their fees.

        The sweep is built from the ledger rather than from this run's
        results, so fees of payments completed by a run that aborted before
        its sweep are picked up here.
        """
        with transaction.atomic():
            unswept = list(
                Payment.objects.unswept()
                .select_for_update()
                .values_list("id", "rubgo_service_fee")
            )
            amount = sum((fee for _, fee in unswept), Decimal("0.00"))
            if amount <= 0:
                return

            sweep = PlatformFeeTransfer.objects.create(
                settlement_run=run,
                amount=amount,
                currency=cls.get_currency(),
            )
            Payment.objects.filter(id__in=[pk for pk, _ in unswept]).update(
                fee_transfer=sweep
            )

        if amount != summary.total_fees:
            cls.get_logger().warning(
                "Fee sweep includes fees left unswept by an earlier run",
                extra={
                    "fee_transfer_id": str(sweep.id),
                    "amount": str(amount),
                    "run_fees": str(summary.total_fees),
                },
            )

        summary.fee_transfer_id = sweep.id
        summary.fees_swept = amount
        succeeded = cls.execute_fee_transfer(sweep.id)
        summary.fee_transfer_status = (
            FeeTransferState.COMPLETED if succeeded else FeeTransferState.FAILED
        )

    @classmethod
    def execute_fee_transfer(cls, fee_transfer_id: uuid.UUID) -> bool:
        """
        Move one sweep's amount to the master account.

        A failure is logged at ERROR and leaves the sweep FAILED for the
        next run; completed therapist payments are never touched.

        Returns:
            True if the master transfer succeeded
        """
        logger = cls.get_logger()
        sweep = PlatformFeeTransfer.objects.get(pk=fee_transfer_id)

        try:
            result = cls.get_gateway().transfer_to_master(
                amount=sweep.amount,
                currency=sweep.currency,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    "master_transfer", sweep.id
                ),
                metadata={
                    "fee_transfer_id": str(sweep.id),
                    "settlement_run_id": str(sweep.settlement_run_id),
                },
            )
        except GatewayError as e:
            logger.error(
                "Master account fee transfer failed; fees remain owed to the platform",
                extra={
                    "fee_transfer_id": str(fee_transfer_id),
                    "amount": str(sweep.amount),
                    "error": str(e),
                    "is_retryable": e.is_retryable,
                },
            )
            with transaction.atomic():
                sweep = PlatformFeeTransfer.objects.select_for_update().get(
                    pk=fee_transfer_id
                )
                sweep.fail(str(e))
                sweep.save()
            return False

        with transaction.atomic():
            sweep = PlatformFeeTransfer.objects.select_for_update().get(
                pk=fee_transfer_id
            )
            sweep.complete(reference=result.reference)
            sweep.save()

        logger.info(
            "Master account fee transfer completed",
            extra={
                "fee_transfer_id": str(fee_transfer_id),
                "amount": str(sweep.amount),
                "transfer_reference": result.reference,
            },
        )
        return True

    # =========================================================================
    # Bookkeeping
    # =========================================================================

    @classmethod
    def _record(cls, run: SettlementRun, summary: SettlementSummary) -> None:
        run.requests_discovered = summary.requests_discovered
        run.payments_created = summary.payments_created
        run.materialization_failures = summary.materialization_failures
        run.payouts_completed = summary.payouts_completed
        run.payout_failures = summary.payout_failures
        run.total_payouts = summary.total_payouts
        run.total_fees = summary.total_fees
        run.fee_transfer_failed = (
            summary.fee_transfer_status == FeeTransferState.FAILED
            or summary.fee_transfers_retried > summary.fee_transfers_recovered
        )

    # =========================================================================
    # Manual Operations
    # =========================================================================

    @classmethod
    def retry_payment(cls, payment_id: uuid.UUID) -> Payment:
        """
        Return a FAILED payment to PENDING for the next run.

        Raises:
            PaymentNotFoundError: Unknown payment
            InvalidStateTransitionError: Payment is not FAILED
        """
        with transaction.atomic():
            payment = Payment.objects.select_for_update().filter(pk=payment_id).first()
            if payment is None:
                raise PaymentNotFoundError(
                    f"Payment {payment_id} not found",
                    details={"payment_id": str(payment_id)},
                )
            try:
                payment.retry()
            except TransitionNotAllowed as e:
                raise InvalidStateTransitionError(
                    f"Cannot retry payment from '{payment.status}' state",
                    details={
                        "current_state": payment.status,
                        "target_state": PaymentState.PENDING,
                        "transition": "retry",
                    },
                ) from e
            payment.save()

        cls.get_logger().info(
            "Failed payment queued for retry",
            extra={"payment_id": str(payment_id)},
        )
        return payment


__all__ = [
    "MAX_TRANSFER_ATTEMPTS",
    "SETTLEMENT_LOCK_KEY",
    "STUCK_PROCESSING_MINUTES",
    "SettlementService",
    "SettlementSummary",
]
