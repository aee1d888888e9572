"""
URL configuration for the payments app.

Routes:
    /payments/                         GET
    /payments/{id}/                    GET
    /payments/{id}/retry/              POST
    /settlement-runs/                  GET
    /settlement-runs/{id}/             GET
    /settlement-runs/trigger/          POST
    /summary/                          GET

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from payments.views import PaymentViewSet, PayoutSummaryView, SettlementRunViewSet

router = DefaultRouter()
router.register(r"payments", PaymentViewSet, basename="payment")
router.register(r"settlement-runs", SettlementRunViewSet, basename="settlement-run")

app_name = "payments"

urlpatterns = [
    path("", include(router.urls)),
    path("summary/", PayoutSummaryView.as_view(), name="payout-summary"),
]
