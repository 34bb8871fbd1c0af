# backend/suite/repositories/payment_repository.py
"""
Payment Repository for the Suite backend

Data access for booking payments and Stripe customer records:
- Booking payment lookup by booking
- Recording a cancellation settlement on the payment record
- Stripe customer lookup for off-session charges
"""

import logging
from typing import Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.payment import BookingPayment, StripeCustomer
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingPaymentRepository(BaseRepository[BookingPayment]):
    """Repository for per-booking payment records."""

    def __init__(self, db: Session):
        super().__init__(db, BookingPayment)
        self.logger = logging.getLogger(__name__)

    def get_payment_by_booking_id(self, booking_id: str) -> Optional[BookingPayment]:
        """
        Get payment record by booking ID.

        Args:
            booking_id: Booking ID

        Returns:
            BookingPayment if found, None otherwise
        """
        try:
            payment = (
                self.db.query(BookingPayment).filter(BookingPayment.booking_id == booking_id).first()
            )
            return cast(Optional[BookingPayment], payment)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to get payment by booking ID: {str(e)}")
            raise RepositoryException(f"Failed to get payment by booking ID: {str(e)}")

    def record_cancellation_settlement(
        self,
        payment: BookingPayment,
        *,
        status: str,
        refunded_amount: float,
        cancellation_fee: float,
        settlement_error: Optional[str] = None,
    ) -> BookingPayment:
        """
        Store the outcome of a cancellation settlement.

        Scheduled pre-authorization and capture times are cleared so the
        payment jobs no longer pick the booking up.
        """
        try:
            payment.status = status
            payment.refunded_amount = refunded_amount
            payment.cancellation_fee = cancellation_fee
            payment.settlement_error = settlement_error[:500] if settlement_error else None
            payment.pre_auth_scheduled_for = None
            payment.capture_scheduled_for = None
            self.db.flush()
            return payment
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to record cancellation settlement: {str(e)}")
            raise RepositoryException(f"Failed to record cancellation settlement: {str(e)}")


class StripeCustomerRepository(BaseRepository[StripeCustomer]):
    """Repository for Stripe customer records."""

    def __init__(self, db: Session):
        super().__init__(db, StripeCustomer)
        self.logger = logging.getLogger(__name__)

    def get_customer_by_user_id(self, user_id: str) -> Optional[StripeCustomer]:
        try:
            customer = (
                self.db.query(StripeCustomer).filter(StripeCustomer.user_id == user_id).first()
            )
            return cast(Optional[StripeCustomer], customer)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to get customer by user ID: {str(e)}")
            raise RepositoryException(f"Failed to get customer by user ID: {str(e)}")

    def get_stripe_customer_id(self, user_id: str) -> Optional[str]:
        """Return the Stripe customer ID for a user, or None when they have none."""
        customer = self.get_customer_by_user_id(user_id)
        return customer.stripe_customer_id if customer is not None else None
