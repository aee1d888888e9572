"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # The test client speaks plain HTTP
    settings.SECURE_SSL_REDIRECT = False

    # Use fast password hasher for tests
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    # Never reach a real payout provider from tests
    settings.PAYOUT_GATEWAY_CLASS = (
        "payments.gateways.logging_gateway.LoggingPayoutGateway"
    )
    settings.STRIPE_SECRET_KEY = "sk_test_fake"


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_settlement_service.py, test_workers.py, etc. → integration
    - test_models.py, test_pricing.py, test_locks.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_views.py",
        "test_settlement_service.py",
        "test_reporting.py",
        "test_workers.py",
        "test_migrations.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_pricing.py",
        "test_state_transitions.py",
        "test_locks.py",
        "test_stripe_gateway.py",
        "test_gateways.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def admin_api_client(db, django_user_model):
    """DRF APIClient logged in as a staff user."""
    from rest_framework.test import APIClient

    user = django_user_model.objects.create_user(
        username="ops", password="not-used", is_staff=True
    )
    client = APIClient()
    client.force_authenticate(user=user)
    return client
