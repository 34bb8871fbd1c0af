# backend/suite/core/exceptions.py
"""
Exceptions raised by the cancellation services.

Each ``DomainException`` knows its HTTP status, so a route can return
``exc.to_http_exception()`` without mapping error types itself.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Business error with a stable ``code`` and structured ``details``."""

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


class ValidationException(DomainException):
    """Bad input, such as a blank cancellation reason."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Booking or professional profile does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class BusinessRuleException(DomainException):
    """The booking is in a state that cannot be cancelled."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """The acting user is not a participant in the booking."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Infrastructure failure behind a service call."""


# Payment processor errors


class PaymentProcessorError(ServiceException):
    """
    Raised when a call to the payment processor is rejected or fails.

    ``step`` names the settlement sub-step that failed (``deposit`` or
    ``balance``) once the error has been wrapped by the settlement service; ``processor_code`` carries the processor's own error code when known.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        step: Optional[str] = None,
        processor_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        merged = dict(details or {})
        if step:
            merged.setdefault("step", step)
        if processor_code:
            merged.setdefault("processor_code", processor_code)
        super().__init__(message, code="PAYMENT_PROCESSOR_ERROR", details=merged)
        self.step = step
        self.processor_code = processor_code

    def wrap(self, step: str, prefix: str) -> "PaymentProcessorError":
        """Return a copy of this error prefixed with the failing settlement step."""
        wrapped = PaymentProcessorError(
            f"{prefix}: {self.message}",
            step=step,
            processor_code=self.processor_code,
            details=self.details,
        )
        wrapped.__cause__ = self
        return wrapped


class CompensationFailure(ServiceException):
    """
    Raised when the separate cancellation-fee charge cannot be created.

    Never propagates past the settlement service: the original authorization has
    already been voided at that point, so the cancellation is reported as done and
    the fee must be collected out of band.
    """

    def __init__(self, message: str, *, booking_id: str, amount_cents: int) -> None:
        super().__init__(
            message,
            code="CANCELLATION_FEE_CHARGE_FAILED",
            details={"booking_id": booking_id, "amount_cents": amount_cents},
        )


class RepositoryException(Exception):
    """A query or flush failed in the repository layer."""
