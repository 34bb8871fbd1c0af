# backend/suite/repositories/__init__.py
"""
Repository Pattern Implementation for the Suite backend

This package provides the repository layer for data access,
separating business logic from database queries.

Usage:
    from suite.repositories import RepositoryFactory

    # In a service:
    booking_repository = RepositoryFactory.create_booking_repository(db)
    booking = booking_repository.get_booking_with_details(booking_id)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .payment_repository import BookingPaymentRepository, StripeCustomerRepository
from .professional_profile_repository import ProfessionalProfileRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "BookingPaymentRepository",
    "ProfessionalProfileRepository",
    "RepositoryFactory",
    "StripeCustomerRepository",
]
