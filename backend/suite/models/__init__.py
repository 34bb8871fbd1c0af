"""
Database models for the Suite booking backend.

Importing this package registers every model on ``Base.metadata``.
"""

from .booking import Booking, BookingStatus
from .payment import BookingPayment, StripeConnectedAccount, StripeCustomer
from .professional import ProfessionalProfile
from .user import User

__all__ = [
    "Booking",
    "BookingPayment",
    "BookingStatus",
    "ProfessionalProfile",
    "StripeConnectedAccount",
    "StripeCustomer",
    "User",
]
