# backend/classbook/core/exceptions.py
"""
Domain-specific exceptions for the classbook reservation backend.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

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
        """Convert to the HTTPException the API layer responds with."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when the request is malformed or breaks an input rule."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedException(DomainException):
    """Raised when user is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class ReservationNotFoundException(NotFoundException):
    """
    Raised when a reservation does not exist or is not visible to the caller.

    Reservations owned by someone else use the same error so their
    existence is never revealed.
    """

    def __init__(self, reservation_id: Optional[str] = None):
        super().__init__(
            message="Reservation not found",
            code="RESERVATION_NOT_FOUND",
            details={"reservation_id": reservation_id} if reservation_id else {},
        )


class TimeSlotNotFoundException(NotFoundException):
    """Raised when the referenced time slot does not exist."""

    def __init__(self, time_slot_id: str, *, target: bool = False):
        super().__init__(
            message="Target event not found" if target else "Event not found",
            code="TIME_SLOT_NOT_FOUND",
            details={"time_slot_id": time_slot_id},
        )


class DuplicateReservationException(ConflictException):
    """Raised when the user already holds a booked reservation on the slot."""

    def __init__(self, user_id: str, time_slot_id: str, *, target: bool = False):
        super().__init__(
            message=(
                "You already have a reservation for the target event"
                if target
                else "You already have a reservation for this event"
            ),
            code="DUPLICATE_RESERVATION",
            details={"user_id": user_id, "time_slot_id": time_slot_id},
        )


class TimeSlotFullException(ConflictException):
    """Raised when the slot has no seats left."""

    def __init__(self, time_slot_id: str, capacity: int, *, target: bool = False):
        super().__init__(
            message="Target event is full" if target else "Event is full",
            code="TIME_SLOT_FULL",
            details={"time_slot_id": time_slot_id, "capacity": capacity},
        )


class ReservationCanceledException(ConflictException):
    """Raised when an operation needs a booked reservation but it is canceled."""

    def __init__(self, reservation_id: str, action: str = "rescheduled"):
        super().__init__(
            message=f"Reservation is canceled and cannot be {action}",
            code="RESERVATION_CANCELED",
            details={"reservation_id": reservation_id},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
