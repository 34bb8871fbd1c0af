"""
Payment models for Stripe integration.

This module defines the payment-related models for the Suite marketplace's
Stripe Connect integration: customer records, professionals' connected
accounts, and the per-booking payment record that ties a booking to its
deposit and balance PaymentIntents.

Money columns on ``BookingPayment`` are dollars (two decimal places), matching
what the booking flow shows to clients; conversion to integer cents happens at
the payment processor boundary.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .professional import ProfessionalProfile
    from .user import User


def _money() -> Numeric:
    return Numeric(10, 2, asdecimal=False)


class StripeCustomer(Base):
    """Maps users to their Stripe customer IDs."""

    __tablename__ = "stripe_customers"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    stripe_customer_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="stripe_customer")

    def __repr__(self) -> str:
        return f"<StripeCustomer(user_id={self.user_id}, stripe_id={self.stripe_customer_id})>"


class StripeConnectedAccount(Base):
    """Professional Stripe Connect accounts for receiving payouts."""

    __tablename__ = "stripe_connected_accounts"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    professional_profile_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("professional_profiles.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    stripe_account_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    professional_profile: Mapped["ProfessionalProfile"] = relationship(
        "ProfessionalProfile", back_populates="stripe_connected_account"
    )

    def __repr__(self) -> str:
        return (
            f"<StripeConnectedAccount(professional={self.professional_profile_id}, "
            f"account={self.stripe_account_id})>"
        )


class BookingPayment(Base):
    """Deposit + balance payment record for one booking."""

    __tablename__ = "booking_payments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    amount: Mapped[float] = mapped_column(_money(), nullable=False, comment="Service price")
    tip_amount: Mapped[float] = mapped_column(_money(), nullable=False, default=0)
    service_fee: Mapped[float] = mapped_column(
        _money(), nullable=False, default=0, comment="Platform pass-through fee"
    )
    deposit_amount: Mapped[float] = mapped_column(_money(), nullable=False, default=0)
    balance_amount: Mapped[float] = mapped_column(_money(), nullable=False, default=0)

    # Balance PaymentIntent; also carries the service fee
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    deposit_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_payment_method_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    refunded_amount: Mapped[Optional[float]] = mapped_column(_money(), nullable=True)
    cancellation_fee: Mapped[Optional[float]] = mapped_column(_money(), nullable=True)
    settlement_error: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    pre_auth_scheduled_for: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    capture_scheduled_for: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="payment")

    def __repr__(self) -> str:
        return f"<BookingPayment(booking={self.booking_id}, status={self.status})>"
