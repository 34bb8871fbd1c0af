from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from suite.database import Base

# Import models so Base.metadata is populated for create_all.
from suite.models import (
    Booking,
    BookingPayment,
    BookingStatus,
    ProfessionalProfile,
    StripeConnectedAccount,
    StripeCustomer,
    User,
)

NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def unit_db() -> Session:
    """Provide a session bound to a fresh in-memory database."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def client_user(unit_db: Session) -> User:
    user = User(email="client@example.com", first_name="Casey", last_name="Client")
    unit_db.add(user)
    unit_db.flush()
    unit_db.add(StripeCustomer(user_id=user.id, stripe_customer_id="cus_client"))
    unit_db.commit()
    return user


@pytest.fixture
def professional_user(unit_db: Session) -> User:
    user = User(email="pro@example.com", first_name="Pat", last_name="Pro")
    unit_db.add(user)
    unit_db.commit()
    return user


@pytest.fixture
def professional_profile(unit_db: Session, professional_user: User) -> ProfessionalProfile:
    profile = ProfessionalProfile(
        user_id=professional_user.id,
        cancellation_policy_enabled=True,
        cancellation_24h_charge_percentage=50,
        cancellation_48h_charge_percentage=25,
    )
    unit_db.add(profile)
    unit_db.flush()
    unit_db.add(
        StripeConnectedAccount(professional_profile_id=profile.id, stripe_account_id="acct_pro")
    )
    unit_db.commit()
    return profile


@pytest.fixture
def make_booking(
    unit_db: Session, client_user: User, professional_profile: ProfessionalProfile
) -> Callable[..., Booking]:
    """Build a confirmed booking with a $200 service, $50 deposit and $20 service fee."""

    def _make(
        *,
        hours_until: float = 10,
        with_payment: bool = True,
        deposit_amount: float = 50.0,
        deposit_intent: Optional[str] = "pi_deposit",
        balance_intent: Optional[str] = "pi_balance",
        status: str = BookingStatus.CONFIRMED.value,
    ) -> Booking:
        start = NOW + timedelta(hours=hours_until)
        booking = Booking(
            client_id=client_user.id,
            professional_profile_id=professional_profile.id,
            appointment_start=start,
            appointment_end=start + timedelta(hours=1),
            status=status,
        )
        unit_db.add(booking)
        unit_db.flush()
        if with_payment:
            unit_db.add(
                BookingPayment(
                    booking_id=booking.id,
                    amount=200.0,
                    tip_amount=0.0,
                    service_fee=20.0,
                    deposit_amount=deposit_amount,
                    balance_amount=200.0 - deposit_amount,
                    deposit_payment_intent_id=deposit_intent,
                    stripe_payment_intent_id=balance_intent,
                    stripe_payment_method_id="pm_card",
                    status="authorized",
                    pre_auth_scheduled_for=start - timedelta(hours=24),
                    capture_scheduled_for=start + timedelta(hours=24),
                )
            )
        unit_db.commit()
        return booking

    return _make
