"""
Tests for payments app.

This package contains test modules for:
- test_models.py: Payment, PlatformFeeTransfer, SettlementRun model tests
- test_settlement_service.py: Weekly settlement run tests
- test_workers.py: Celery task tests
- test_views.py: Admin API endpoint tests

Usage:
    pytest app/payments/tests/
    pytest app/payments/tests/test_settlement_service.py
"""
