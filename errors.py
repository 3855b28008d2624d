"""
Booking error taxonomy and its mapping onto HTTP responses.

Raised by the repository and the HTTP client adapter, handled by the toggle
controller and the API routes.
"""
from __future__ import annotations

from fastapi import HTTPException, status


class BookingError(Exception):
    """Base exception for all booking errors."""


class ValidationError(BookingError):
    """Empty actor or out-of-range slot. Rejected before any external call."""


class ConflictError(BookingError):
    """A booking already exists for the requested (date, slot)."""


class NotFoundError(BookingError):
    """The booking to delete no longer exists."""


class TransportError(BookingError):
    """The persistence endpoint could not be reached or answered unexpectedly."""


# List of (exception type, status_code). First match wins.
HTTP_ERROR_RULES: list[tuple[type[BookingError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TransportError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def error_to_http(exc: BookingError) -> HTTPException:
    """Map a booking error to an HTTPException; unknown errors become 500."""
    for exc_type, status_code in HTTP_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
