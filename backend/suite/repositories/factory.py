# backend/suite/repositories/factory.py
"""
Repository Factory for the Suite backend

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .payment_repository import BookingPaymentRepository, StripeCustomerRepository
    from .professional_profile_repository import ProfessionalProfileRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services can be tested with
    repository mocks.
    """

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_booking_payment_repository(db: Session) -> "BookingPaymentRepository":
        """Create repository for booking payment records."""
        from .payment_repository import BookingPaymentRepository

        return BookingPaymentRepository(db)

    @staticmethod
    def create_stripe_customer_repository(db: Session) -> "StripeCustomerRepository":
        from .payment_repository import StripeCustomerRepository

        return StripeCustomerRepository(db)

    @staticmethod
    def create_professional_profile_repository(db: Session) -> "ProfessionalProfileRepository":
        """Create repository for professional profiles and cancellation policies."""
        from .professional_profile_repository import ProfessionalProfileRepository

        return ProfessionalProfileRepository(db)
