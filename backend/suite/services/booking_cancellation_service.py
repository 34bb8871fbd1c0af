# backend/suite/services/booking_cancellation_service.py
"""
Booking Cancellation Service for the Suite backend

Cancels bookings and settles their payments under the professional's
cancellation policy.

Uses a 3-phase pattern so no database transaction is held open during
payment processor calls:
- Phase 1: Read/validate booking, snapshot what settlement needs
- Phase 2: Settle deposit and balance with the processor (no transaction)
- Phase 3: Write booking and payment status in one transaction
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..integrations.payment_processor import PaymentProcessor, cents_to_dollars
from ..integrations.stripe_gateway import StripePaymentGateway
from ..models.booking import Booking
from ..repositories.factory import RepositoryFactory
from ..schemas.cancellation import (
    CancellationEligibility,
    CancellationOutcome,
    CancellationPolicyPreview,
)
from .base import BaseService
from .cancellation_outcomes import (
    PaymentRecord,
    SettlementResult,
    calculate_refund_amount,
    derive_payment_status,
)
from .cancellation_policy_engine import (
    CancellationActor,
    CancellationPolicy,
    CancellationPolicyEngine,
    describe_time_window,
)
from .cancellation_settlement_service import CancellationSettlementService, split_cancellation_fee

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _CancellationContext:
    booking_id: str
    client_id: str
    actor: CancellationActor
    appointment_start: datetime
    policy: CancellationPolicy
    payment: Optional[PaymentRecord]
    # Loaded in phase 1 so settlement never queries the session
    client_customer_id: Optional[str] = None


class BookingCancellationService(BaseService):
    """
    Service layer for cancelling bookings.

    The payment processor is injected; when none is given a Stripe gateway is
    built from settings on first use.
    """

    def __init__(
        self,
        db: Session,
        processor: Optional[PaymentProcessor] = None,
        policy_engine: Optional[CancellationPolicyEngine] = None,
    ):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.payment_repository = RepositoryFactory.create_booking_payment_repository(db)
        self.customer_repository = RepositoryFactory.create_stripe_customer_repository(db)
        self.policy_engine = policy_engine or CancellationPolicyEngine()
        self._processor = processor
        self._settlement_service: Optional[CancellationSettlementService] = None

    @property
    def settlement_service(self) -> CancellationSettlementService:
        if self._settlement_service is None:
            processor = self._processor or StripePaymentGateway(api_key=settings.stripe_secret_key)
            self._settlement_service = CancellationSettlementService(
                processor, policy_engine=self.policy_engine
            )
        return self._settlement_service

    # ------------------------------------------------------------------ #
    # Eligibility and preview
    # ------------------------------------------------------------------ #

    def can_cancel(self, booking_id: str, user_id: str) -> CancellationEligibility:
        """Check whether a user may cancel a booking without raising."""
        booking = self.booking_repository.get_booking_with_details(booking_id)
        if not booking:
            return CancellationEligibility(can_cancel=False, reason="Booking not found")
        if self._resolve_actor(booking, user_id) is None:
            return CancellationEligibility(can_cancel=False, reason="Unauthorized")
        if booking.is_cancelled:
            return CancellationEligibility(can_cancel=False, reason="Booking is already cancelled")
        if booking.is_completed:
            return CancellationEligibility(
                can_cancel=False, reason="Cannot cancel completed booking"
            )
        return CancellationEligibility(can_cancel=True)

    @BaseService.measure_operation("get_policy_preview")
    def get_policy_preview(
        self,
        booking_id: str,
        user_id: str,
        *,
        force_policy: bool = False,
        now: Optional[datetime] = None,
    ) -> CancellationPolicyPreview:
        """
        Show what cancelling now would charge and refund.

        Raises:
            NotFoundException: If booking not found
            ForbiddenException: If the user is not part of the booking
        """
        booking = self.booking_repository.get_booking_with_details(booking_id)
        if not booking:
            raise NotFoundException("Booking not found")
        actor = self._resolve_actor(booking, user_id)
        if actor is None:
            raise ForbiddenException("You don't have permission to view this booking")

        policy = CancellationPolicy.from_profile(booking.professional_profile)
        evaluation = self.policy_engine.evaluate(
            booking.appointment_start,
            policy=policy,
            actor=actor,
            force_policy=force_policy,
            now=now,
        )
        payment = PaymentRecord.from_model(booking.payment) if booking.payment else None
        charge_amount = 0.0
        if payment and evaluation.applies:
            split = split_cancellation_fee(payment, evaluation.charge_percentage)
            charge_amount = cents_to_dollars(split.total_cents)
        refund_amount = (
            calculate_refund_amount(payment, actor=actor, charge_amount=charge_amount)
            if payment
            else 0.0
        )
        return CancellationPolicyPreview(
            has_policy=policy.enabled,
            charge_percentage=evaluation.charge_percentage if evaluation.applies else 0,
            charge_amount=charge_amount,
            refund_amount=refund_amount,
            hours_until_appointment=round(evaluation.hours_until_appointment, 2),
            time_window=describe_time_window(evaluation.hours_until_appointment),
        )

    # ------------------------------------------------------------------ #
    # Cancellation
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self,
        booking_id: str,
        user_id: str,
        reason: str,
        *,
        force_policy: bool = False,
        now: Optional[datetime] = None,
    ) -> CancellationOutcome:
        """
        Cancel a booking and settle its payment.

        A processor failure does not undo the cancellation: the booking is
        cancelled, the payment is marked ``failed`` and the error is returned
        for manual reconciliation.

        Raises:
            ValidationException: If the reason is blank
            NotFoundException: If booking not found
            ForbiddenException: If the user is not part of the booking
            BusinessRuleException: If the booking is already cancelled or completed
        """
        if not reason or not reason.strip():
            raise ValidationException("Cancellation reason is required")
        reason = reason.strip()

        # ========== PHASE 1: Read/validate (quick transaction) ==========
        with self.transaction():
            booking = self.booking_repository.get_booking_with_details(booking_id)
            if not booking:
                raise NotFoundException("Booking not found")
            ctx = self._build_cancellation_context(booking, user_id)

        # ========== PHASE 2: Processor calls (NO transaction) ==========
        result: Optional[SettlementResult] = None
        if ctx.payment is not None:
            result = self.settlement_service.settle(
                ctx.payment,
                appointment_start=ctx.appointment_start,
                booking_id=ctx.booking_id,
                client_id=ctx.client_id,
                actor=ctx.actor,
                reason=reason,
                policy=ctx.policy,
                force_policy=force_policy,
                now=now,
                customer_id=ctx.client_customer_id,
            )
        else:
            self.logger.info(f"Booking {booking_id} has no payment record; nothing to settle")

        # ========== PHASE 3: Write results (quick transaction) ==========
        with self.transaction():
            booking = self.booking_repository.get_booking_with_details(booking_id)
            if not booking:
                raise NotFoundException("Booking not found after settlement")
            outcome = self._finalize_cancellation(booking, ctx, result, user_id, reason)

        if outcome.error:
            self.logger.error(
                f"Booking {booking_id} cancelled but payment settlement failed: {outcome.error}"
            )
        else:
            self.logger.info(
                f"Booking {booking_id} cancelled by {ctx.actor.value} {user_id}: "
                f"status={outcome.payment_status} charge=${outcome.charge_amount:.2f} "
                f"refund=${outcome.refund_amount:.2f}"
            )
        return outcome

    def cancel_with_policy(
        self,
        booking_id: str,
        user_id: str,
        reason: str,
        *,
        now: Optional[datetime] = None,
    ) -> CancellationOutcome:
        """Cancel a booking applying the fee policy regardless of who cancels."""
        return self.cancel_booking(booking_id, user_id, reason, force_policy=True, now=now)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _resolve_actor(booking: Booking, user_id: str) -> Optional[CancellationActor]:
        if booking.client_id == user_id:
            return CancellationActor.CLIENT
        if booking.professional_user_id == user_id:
            return CancellationActor.PROFESSIONAL
        return None

    def _build_cancellation_context(self, booking: Booking, user_id: str) -> _CancellationContext:
        actor = self._resolve_actor(booking, user_id)
        if actor is None:
            raise ForbiddenException("You don't have permission to cancel this booking")
        if booking.is_cancelled:
            raise BusinessRuleException("Booking is already cancelled")
        if booking.is_completed:
            raise BusinessRuleException("Cannot cancel completed booking")

        payment = PaymentRecord.from_model(booking.payment) if booking.payment else None
        return _CancellationContext(
            booking_id=booking.id,
            client_id=booking.client_id,
            actor=actor,
            appointment_start=booking.appointment_start,
            policy=CancellationPolicy.from_profile(booking.professional_profile),
            payment=payment,
            client_customer_id=(
                self.customer_repository.get_stripe_customer_id(booking.client_id)
                if payment is not None
                else None
            ),
        )

    def _finalize_cancellation(
        self,
        booking: Booking,
        ctx: _CancellationContext,
        result: Optional[SettlementResult],
        user_id: str,
        reason: str,
    ) -> CancellationOutcome:
        if booking.is_cancelled:
            self.logger.warning(f"Booking {booking.id} was cancelled while settling payment")
        booking.cancel(user_id, reason)

        if result is None or ctx.payment is None or booking.payment is None:
            self.booking_repository.flush()
            return CancellationOutcome(success=True, booking_id=booking.id)

        status = derive_payment_status(result)
        refund_amount = (
            calculate_refund_amount(ctx.payment, actor=ctx.actor, charge_amount=result.charge_amount)
            if result.succeeded
            else 0.0
        )
        self.payment_repository.record_cancellation_settlement(
            booking.payment,
            status=status.value,
            refunded_amount=refund_amount,
            cancellation_fee=result.charge_amount,
            settlement_error=result.error,
        )
        return CancellationOutcome(
            success=result.succeeded,
            booking_id=booking.id,
            payment_status=status.value,
            charge_amount=result.charge_amount,
            refund_amount=refund_amount,
            error=result.error,
        )
