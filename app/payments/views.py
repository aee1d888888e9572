"""
DRF views for the payments app.

This module provides admin-only API endpoints for the settlement ledger:
- PaymentViewSet: Payment history, filtering and manual retry
- SettlementRunViewSet: Settlement run history and manual trigger
- PayoutSummaryView: Ledger totals

Endpoints:
    GET  /api/v1/payments/payments/                 - List payments
    GET  /api/v1/payments/payments/{id}/            - Payment detail
    POST /api/v1/payments/payments/{id}/retry/      - Retry a FAILED payment
    GET  /api/v1/payments/settlement-runs/          - List settlement runs
    GET  /api/v1/payments/settlement-runs/{id}/     - Settlement run detail
    POST /api/v1/payments/settlement-runs/trigger/  - Queue a settlement run
    GET  /api/v1/payments/summary/                  - Payout totals

Security:
    - All endpoints require a staff user
"""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.exceptions import InvalidStateTransitionError, PaymentNotFoundError
from payments.filters import PaymentFilter
from payments.models import Payment, SettlementRun
from payments.pagination import PaymentCursorPagination, SettlementRunCursorPagination
from payments.serializers import (
    PaymentSerializer,
    PayoutSummaryQuerySerializer,
    PayoutSummarySerializer,
    SettlementRunSerializer,
    SettlementTriggerSerializer,
)
from payments.services import PayoutReportService, SettlementService
from payments.workers import run_weekly_settlement

logger = logging.getLogger(__name__)


class PaymentViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for the payment ledger.

    list:
        Payments newest first. Filter with ?status=, ?therapist_id=,
        ?created_after= and ?created_before=.

    retrieve:
        A single payment.

    retry:
        Move a FAILED payment back to PENDING for the next settlement run.
    """

    permission_classes = [IsAdminUser]
    serializer_class = PaymentSerializer
    pagination_class = PaymentCursorPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = PaymentFilter
    queryset = Payment.objects.select_related("request", "fee_transfer")

    @extend_schema(
        request=None,
        responses={
            200: PaymentSerializer,
            404: OpenApiResponse(description="Payment not found"),
            409: OpenApiResponse(description="Payment is not in FAILED state"),
        },
    )
    @action(detail=True, methods=["post"])
    def retry(self, request, pk=None):
        """Retry a payment that exhausted its transfer attempts."""
        try:
            payment = SettlementService.retry_payment(pk)
        except PaymentNotFoundError as e:
            return Response(e.to_dict(), status=status.HTTP_404_NOT_FOUND)
        except InvalidStateTransitionError as e:
            return Response(e.to_dict(), status=status.HTTP_409_CONFLICT)

        logger.info(
            "Payment retry requested via API",
            extra={"payment_id": str(payment.id), "user_id": request.user.pk},
        )
        return Response(PaymentSerializer(payment).data)


class SettlementRunViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for settlement run history.

    trigger:
        Queue the settlement task outside its weekly schedule. The run
        takes the same lock as the scheduled one, so a concurrent trigger
        is skipped rather than doubled.
    """

    permission_classes = [IsAdminUser]
    serializer_class = SettlementRunSerializer
    pagination_class = SettlementRunCursorPagination
    queryset = SettlementRun.objects.prefetch_related("fee_transfers")

    @extend_schema(
        request=SettlementTriggerSerializer,
        responses={
            202: OpenApiResponse(description="Settlement task queued"),
            400: OpenApiResponse(description="Invalid as_of"),
        },
    )
    @action(detail=False, methods=["post"])
    def trigger(self, request):
        serializer = SettlementTriggerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        as_of = serializer.validated_data.get("as_of")
        task = run_weekly_settlement.delay(as_of=as_of.isoformat() if as_of else None)

        logger.info(
            "Settlement run queued via API",
            extra={
                "task_id": task.id,
                "as_of": as_of.isoformat() if as_of else None,
                "user_id": request.user.pk,
            },
        )
        return Response(
            {"status": "queued", "task_id": task.id},
            status=status.HTTP_202_ACCEPTED,
        )


class PayoutSummaryView(APIView):
    """
    Ledger totals.

    GET /api/v1/payments/summary/?since=...&until=...
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        parameters=[PayoutSummaryQuerySerializer],
        responses={200: PayoutSummarySerializer},
    )
    def get(self, request):
        query = PayoutSummaryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        summary = PayoutReportService.get_summary(
            since=query.validated_data.get("since"),
            until=query.validated_data.get("until"),
        )
        return Response(PayoutSummarySerializer(summary).data)
