# backend/suite/models/professional.py
"""
Professional profile model.

Holds the per-professional cancellation policy that the settlement engine
reads when a booking is cancelled. The percentage columns are nullable: an
unset window falls back to the platform defaults.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class ProfessionalProfile(Base):
    __tablename__ = "professional_profiles"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    user_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    cancellation_policy_enabled = Column(Boolean, nullable=False, default=False)
    cancellation_24h_charge_percentage = Column(Integer, nullable=True)
    cancellation_48h_charge_percentage = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="professional_profile")
    stripe_connected_account = relationship(
        "StripeConnectedAccount", back_populates="professional_profile", uselist=False
    )
    bookings = relationship("Booking", back_populates="professional_profile")

    __table_args__ = (
        CheckConstraint(
            "cancellation_24h_charge_percentage IS NULL OR "
            "(cancellation_24h_charge_percentage >= 0 AND cancellation_24h_charge_percentage <= 100)",
            name="ck_professional_profiles_24h_pct_range",
        ),
        CheckConstraint(
            "cancellation_48h_charge_percentage IS NULL OR "
            "(cancellation_48h_charge_percentage >= 0 AND cancellation_48h_charge_percentage <= 100)",
            name="ck_professional_profiles_48h_pct_range",
        ),
    )

    @property
    def stripe_account_id(self) -> str | None:
        account = self.stripe_connected_account
        return account.stripe_account_id if account is not None else None

    def __repr__(self) -> str:
        return (
            f"<ProfessionalProfile {self.id}: user={self.user_id}, "
            f"policy_enabled={self.cancellation_policy_enabled}>"
        )
