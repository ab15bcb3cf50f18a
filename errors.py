"""
Booking calendar errors

Each error carries a human-readable message for the UI plus a machine code,
and knows how to become an HTTPException for the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class BookingError(Exception):
    """Base class for every error the booking core raises."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationError(BookingError):
    """Missing required field, end date not after start date, or unknown apartment."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(BookingError):
    """The dates overlap an active booking of the same apartment."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND


class PersistenceError(BookingError):
    """Storage could not be read or written."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
