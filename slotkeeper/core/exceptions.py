# slotkeeper/core/exceptions.py
"""
Domain-specific exceptions for the scheduling service.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Each class knows which HTTP status it maps to and whether a client
may retry the same request.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

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
        """Convert to an HTTPException carrying the standard error detail."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
                "retryable": self.retryable,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when the caller is not identified."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
                "retryable": self.retryable,
            },
        )


# Specific business exceptions


class InvalidIntervalException(ValidationException):
    """Raised when a booking interval is empty, reversed, or out of bounds."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_INTERVAL", details=details)


class InvalidRoleException(ValidationException):
    """Raised when the target party cannot act as a provider (or the caller as a requester)."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_ROLE", details=details)


class SchedulingConflictException(ConflictException):
    """Raised when a requested slot overlaps an active commitment of the provider."""

    retryable = True

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="SCHEDULING_CONFLICT",
            details=details or {},
        )


class IllegalTransitionException(BusinessRuleException):
    """Raised when a status change is not allowed from the booking's current state."""

    def __init__(
        self,
        message: str,
        *,
        current_status: str,
        attempted_status: Optional[str] = None,
        action: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"current_status": current_status}
        if attempted_status is not None:
            details["attempted_status"] = attempted_status
        if action is not None:
            details["action"] = action
        super().__init__(message=message, code="ILLEGAL_TRANSITION", details=details)
        self.current_status = current_status
        self.attempted_status = attempted_status


class NotHideableException(BusinessRuleException):
    """Raised when a booking is still live and cannot be archived."""

    def __init__(self, booking_id: str, current_status: str):
        super().__init__(
            message="Only finished or past bookings can be hidden",
            code="NOT_HIDEABLE",
            details={"booking_id": booking_id, "current_status": current_status},
        )


class ReviewNotAllowedException(BusinessRuleException):
    """Raised when a booking is not yet eligible for a review."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="REVIEW_NOT_ALLOWED", details=details)


class DuplicateReviewException(ConflictException):
    """Raised when a booking already has its review."""

    def __init__(self, booking_id: str):
        super().__init__(
            message="A review already exists for this booking",
            code="DUPLICATE_REVIEW",
            details={"booking_id": booking_id},
        )


class SchedulingContentionException(ServiceException):
    """Raised when the provider schedule lock cannot be obtained in time."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(self, provider_id: str, waited_seconds: float):
        super().__init__(
            message="The provider's calendar is busy, please retry",
            code="SCHEDULING_CONTENTION",
            details={"provider_id": provider_id, "waited_seconds": waited_seconds},
        )

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        exc.headers = {"Retry-After": "1"}
        return exc


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
