"""
Pytest fixtures for payout gateway tests.

Sections:
    - Mock Stripe Response Fixtures
    - Mock Stripe Client Fixtures
"""

from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest


# =============================================================================
# Mock Stripe Response Fixtures
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with to_dict support."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@dataclass
class MockStripeList:
    """Mock Stripe list response with data attribute and pagination."""

    items: list[MockStripeObject]
    has_more: bool = False

    @property
    def data(self) -> list[MockStripeObject]:
        return self.items

    def auto_paging_iter(self):
        return iter(self.items)


@pytest.fixture
def mock_transfer():
    """Create a mock Transfer response."""

    def _create(
        id: str = "tr_test123456",
        amount: int = 39600,
        currency: str = "zar",
        destination: str = "acct_1234567890",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "transfer",
                "amount": amount,
                "currency": currency,
                "destination": destination,
                "metadata": metadata or {},
            }
        )

    return _create


@pytest.fixture
def mock_payout():
    """Create a mock Payout response."""

    def _create(
        id: str = "po_test123456",
        amount: int = 5400,
        currency: str = "zar",
        status: str = "pending",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "payout",
                "amount": amount,
                "currency": currency,
                "status": status,
                "metadata": metadata or {},
            }
        )

    return _create


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture
def mock_stripe_transfer(mock_transfer):
    """Mock stripe.Transfer API."""
    with patch("stripe.Transfer") as mock:
        mock.create.return_value = mock_transfer()
        mock.list.return_value = MockStripeList(items=[])
        yield mock


@pytest.fixture
def mock_stripe_payout(mock_payout):
    """Mock stripe.Payout API."""
    with patch("stripe.Payout") as mock:
        mock.create.return_value = mock_payout()
        mock.list.return_value = MockStripeList(items=[])
        yield mock


@pytest.fixture(autouse=True)
def mock_stripe_http_client():
    """Mock stripe.RequestsClient so no HTTP client is built."""
    with patch("stripe.RequestsClient") as mock:
        yield mock
