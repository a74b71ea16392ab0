# storefront/core/errors.py
"""
Domain error taxonomy shared by services.

Services raise these instead of HTTPException so they can be used outside a
request (scripts, tests). `storefront.main` registers handlers that turn them
into JSON responses with the same `{"detail": ...}` shape FastAPI uses.

  - ValidationError -> 400, caller error, never retried
  - NotFoundError   -> 404 where surfaced (reads treat absence as empty)
  - TransientError  -> 503, network/storage failure, safe to retry
"""

from fastapi import status


class CartError(Exception):
    """Base class for errors raised by storefront services."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str | dict):
        super().__init__(detail)
        self.detail = detail


class ValidationError(CartError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(CartError):
    status_code = status.HTTP_404_NOT_FOUND


class TransientError(CartError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
