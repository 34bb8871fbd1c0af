# backend/suite/models/booking.py
"""
Booking model for the Suite marketplace.

A booking is a client's reservation of a professional for one appointment.
The appointment start time drives the cancellation policy window.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    client_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    professional_profile_id = Column(
        String(26), ForeignKey("professional_profiles.id"), nullable=False, index=True
    )

    appointment_start = Column(DateTime(timezone=True), nullable=False, index=True)
    appointment_end = Column(DateTime(timezone=True), nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Cancellation tracking
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    client = relationship("User", foreign_keys=[client_id])
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])
    professional_profile = relationship("ProfessionalProfile", back_populates="bookings")
    payment = relationship(
        "BookingPayment", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: client={self.client_id}, "
            f"professional={self.professional_profile_id}, status={self.status}>"
        )

    def cancel(self, cancelled_by_user_id: str, reason: Optional[str] = None) -> None:
        """Cancel this booking."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = datetime.now(timezone.utc)
        self.cancelled_by_id = cancelled_by_user_id
        self.cancellation_reason = reason
        logger.info(f"Booking {self.id} cancelled by user {cancelled_by_user_id}")

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    @property
    def is_completed(self) -> bool:
        return self.status == BookingStatus.COMPLETED.value

    @property
    def professional_user_id(self) -> Optional[str]:
        profile = self.professional_profile
        return profile.user_id if profile is not None else None
