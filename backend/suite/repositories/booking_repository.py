# backend/suite/repositories/booking_repository.py
"""
Booking Repository for the Suite backend

Implements the data access the cancellation flow needs:
- Booking lookup with the professional, payment and client loaded
- Status updates for cancelled bookings
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.professional import ProfessionalProfile
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Booking.client),
            joinedload(Booking.payment),
            joinedload(Booking.professional_profile).joinedload(
                ProfessionalProfile.stripe_connected_account
            ),
        )

    def get_booking_with_details(self, booking_id: str) -> Optional[Booking]:
        """
        Get a booking with everything cancellation settlement reads.

        Args:
            booking_id: The booking ID

        Returns:
            The booking with professional, payment and client loaded, or None
        """
        try:
            booking: Booking | None = (
                self._apply_eager_loading(self.db.query(Booking))
                .filter(Booking.id == booking_id)
                .first()
            )
            return booking
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking details: {str(e)}")
            raise RepositoryException(f"Failed to get booking details: {str(e)}")

