"""
Pagination classes for the payments API.

Ledger lists are ordered newest first and use cursors so that payments
created by a running settlement do not shift pages.
"""

from rest_framework.pagination import CursorPagination


class PaymentCursorPagination(CursorPagination):
    """
    Cursor pagination for payment lists.

    Default: 50 payments per page
    Maximum: 200 payments per page
    """

    page_size = 50
    max_page_size = 200
    page_size_query_param = "page_size"
    ordering = "-created_at"


class SettlementRunCursorPagination(CursorPagination):
    page_size = 20
    max_page_size = 100
    page_size_query_param = "page_size"
    ordering = "-started_at"
