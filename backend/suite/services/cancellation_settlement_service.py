"""
Cancellation Settlement Service

Settles a cancelled booking's two payment authorizations (deposit and balance)
against the payment processor:

- returns to the client whatever is not owed,
- retains the policy's cancellation fee for the professional,
- always returns the platform service fee carried on the balance authorization.

When the processor rejects a partial capture of an uncaptured balance, the
authorization is voided and the fee is collected through a separate
off-session charge. Steps already completed before a failure are not rolled
back; the result reports how far settlement got so the payment can be marked
``failed`` and reconciled by an admin.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Callable, Optional

from ..constants.payment_status import AuthorizationStatus
from ..core.config import settings
from ..core.exceptions import CompensationFailure, PaymentProcessorError
from ..integrations.payment_processor import (
    CancelRequest,
    CaptureRequest,
    ChargeRequest,
    ChargeResult,
    DestinationTransfer,
    PaymentProcessor,
    RefundRequest,
    cents_to_dollars,
    dollars_to_cents,
    round_half_up,
)
from ..monitoring.prometheus_metrics import prometheus_metrics
from .base import BaseService
from .cancellation_outcomes import PaymentRecord, SettlementResult, derive_payment_status
from .cancellation_policy_engine import (
    CancellationActor,
    CancellationPolicy,
    CancellationPolicyEngine,
    PolicyEvaluation,
)

logger = logging.getLogger(__name__)

# Resolves a client user id to the processor customer id holding their saved card.
# Used only when the caller did not already pass the customer id to ``settle``.
CustomerLookup = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class CancellationFeeSplit:
    total_cents: int
    deposit_cents: int
    balance_cents: int


def split_cancellation_fee(payment: PaymentRecord, charge_percentage: float) -> CancellationFeeSplit:
    """
    Compute the cancellation fee in cents and attribute it to deposit and balance.

    The deposit carries its proportional share of the fee; the balance carries
    the remainder, so the two parts always add up to the total.
    """
    total_cents = round_half_up(payment.service_price * (charge_percentage / 100) * 100)
    deposit_cents = dollars_to_cents(payment.deposit_amount)
    service_price_cents = dollars_to_cents(payment.service_price)

    if deposit_cents > 0 and service_price_cents > 0:
        deposit_fee = round_half_up(deposit_cents / service_price_cents * total_cents)
    else:
        deposit_fee = 0
    return CancellationFeeSplit(
        total_cents=total_cents,
        deposit_cents=deposit_fee,
        balance_cents=total_cents - deposit_fee,
    )


@dataclass(frozen=True)
class _SettlementContext:
    booking_id: str
    client_id: str
    actor: CancellationActor
    reason: str
    policy: CancellationPolicy
    customer_id: Optional[str] = None

    def idempotency_key(self, step: str, action: str) -> str:
        return f"cancel:{self.booking_id}:{step}:{action}"


class _Progress:
    def __init__(self) -> None:
        self.deposit_refunded = False
        self.balance_cancelled = False


class CancellationSettlementService:
    """Applies the cancellation policy to a booking's deposit and balance authorizations."""

    def __init__(
        self,
        processor: PaymentProcessor,
        *,
        customer_lookup: Optional[CustomerLookup] = None,
        policy_engine: Optional[CancellationPolicyEngine] = None,
        flat_platform_fee_cents: Optional[int] = None,
        currency: Optional[str] = None,
    ) -> None:
        self.processor = processor
        self.customer_lookup = customer_lookup
        self.policy_engine = policy_engine or CancellationPolicyEngine()
        self.flat_platform_fee_cents = (
            settings.cancellation_flat_platform_fee_cents
            if flat_platform_fee_cents is None
            else flat_platform_fee_cents
        )
        self.currency = currency or settings.stripe_currency
        self.logger = logging.getLogger(self.__class__.__name__)

    @BaseService.measure_operation("cancellation.settle")
    def settle(
        self,
        payment: PaymentRecord,
        *,
        appointment_start: datetime,
        booking_id: str,
        client_id: str,
        actor: CancellationActor,
        reason: str,
        policy: Optional[CancellationPolicy],
        force_policy: bool = False,
        now: Optional[datetime] = None,
        customer_id: Optional[str] = None,
    ) -> SettlementResult:
        """
        Settle both authorizations for a cancelled booking.

        Processor failures do not raise: they are returned in ``error`` with the
        flags showing which steps completed before the failure.

        ``customer_id`` is the client's processor customer, when the caller has
        already loaded it; otherwise it is resolved through ``customer_lookup``
        only if a separate cancellation charge is needed.
        """
        ctx = _SettlementContext(
            booking_id=booking_id,
            client_id=client_id,
            actor=actor,
            reason=reason,
            policy=policy or CancellationPolicy(),
            customer_id=customer_id,
        )
        evaluation = self.policy_engine.evaluate(
            appointment_start,
            policy=policy,
            actor=actor,
            force_policy=force_policy,
            now=now,
        )
        self.logger.info(
            f"Settling cancellation for booking {booking_id}: payment={payment.id} "
            f"deposit_pi={payment.deposit_payment_intent_id} "
            f"balance_pi={payment.balance_payment_intent_id} "
            f"deposit=${payment.deposit_amount:.2f} balance=${payment.balance_amount:.2f} "
            f"service_price=${payment.service_price:.2f} service_fee=${payment.service_fee:.2f} "
            f"actor={actor.value} force_policy={force_policy}"
        )
        self.logger.info(
            f"Cancellation policy for booking {booking_id}: "
            f"hours_until={evaluation.hours_until_appointment:.1f} "
            f"charge_pct={evaluation.charge_percentage} "
            f"within_window={evaluation.is_within_policy_period} ({evaluation.policy_basis})"
        )

        branch = "policy" if evaluation.applies else "no_policy"
        progress = _Progress()
        charge_amount = 0.0
        try:
            if evaluation.applies:
                charge_amount = self._settle_with_policy(payment, evaluation, ctx, progress)
            else:
                self._settle_without_policy(payment, ctx, progress)
        except PaymentProcessorError as exc:
            self.logger.error(
                f"Cancellation settlement failed for booking {booking_id}: {exc.message} "
                f"(deposit_refunded={progress.deposit_refunded}, "
                f"balance_cancelled={progress.balance_cancelled})"
            )
            result = SettlementResult(
                deposit_refunded=progress.deposit_refunded,
                balance_cancelled=progress.balance_cancelled,
                charge_amount=0.0,
                error=exc.message,
            )
            prometheus_metrics.record_cancellation_settlement(
                branch, derive_payment_status(result).value
            )
            return result

        result = SettlementResult(
            deposit_refunded=True,
            balance_cancelled=True,
            charge_amount=charge_amount,
        )
        self.logger.info(
            f"Cancellation settled for booking {booking_id}: "
            f"charge=${charge_amount:.2f} "
            f"returned_of_service_price=${payment.service_price - charge_amount:.2f}"
        )
        prometheus_metrics.record_cancellation_settlement(
            branch, derive_payment_status(result).value
        )
        return result

    # ------------------------------------------------------------------ #
    # No policy: void or refund everything
    # ------------------------------------------------------------------ #

    def _settle_without_policy(
        self, payment: PaymentRecord, ctx: _SettlementContext, progress: _Progress
    ) -> None:
        self.logger.info(f"No cancellation fee for booking {ctx.booking_id}: full release/refund")

        if payment.deposit_payment_intent_id and payment.deposit_amount > 0:
            try:
                self._release_deposit(payment.deposit_payment_intent_id, ctx)
            except PaymentProcessorError as exc:
                raise exc.wrap("deposit", "Failed to handle deposit")
        progress.deposit_refunded = True

        if payment.balance_payment_intent_id:
            try:
                self._release_balance(payment, payment.balance_payment_intent_id, ctx)
            except PaymentProcessorError as exc:
                raise exc.wrap("balance", "Failed to handle balance payment")
        progress.balance_cancelled = True

    def _release_deposit(self, intent_id: str, ctx: _SettlementContext) -> None:
        authorization = self.processor.retrieve_authorization(intent_id)
        if authorization.status == AuthorizationStatus.CAPTURED:
            refund = self.processor.refund(
                RefundRequest(
                    payment_intent_id=intent_id,
                    metadata={
                        "booking_id": ctx.booking_id,
                        "reason": (
                            f"Full deposit refund - {ctx.actor.value.capitalize()} "
                            f"cancellation: {ctx.reason}"
                        ),
                    },
                    idempotency_key=ctx.idempotency_key("deposit", "refund"),
                )
            )
            self.logger.info(
                f"Deposit {intent_id} refunded in full: ${cents_to_dollars(refund.amount_cents):.2f}"
            )
        elif authorization.status == AuthorizationStatus.AUTHORIZED:
            self.processor.cancel(
                CancelRequest(
                    payment_intent_id=intent_id,
                    idempotency_key=ctx.idempotency_key("deposit", "cancel"),
                )
            )
            self.logger.info(f"Uncaptured deposit {intent_id} voided")
        else:
            self.logger.info(
                f"Deposit {intent_id} in status {authorization.processor_status} - no action needed"
            )

    def _release_balance(
        self, payment: PaymentRecord, intent_id: str, ctx: _SettlementContext
    ) -> None:
        authorization = self.processor.retrieve_authorization(intent_id)
        if authorization.status == AuthorizationStatus.AUTHORIZED:
            self.processor.cancel(
                CancelRequest(
                    payment_intent_id=intent_id,
                    idempotency_key=ctx.idempotency_key("balance", "cancel"),
                )
            )
            self.logger.info(f"Uncaptured balance {intent_id} voided")
        elif authorization.status == AuthorizationStatus.CAPTURED:
            # Clients forfeit the service fee once it has been charged
            retained_fee = (
                0
                if ctx.actor == CancellationActor.PROFESSIONAL
                else dollars_to_cents(payment.service_fee)
            )
            refund_cents = authorization.amount_cents - retained_fee
            if refund_cents > 0:
                refund = self.processor.refund(
                    RefundRequest(
                        payment_intent_id=intent_id,
                        amount_cents=refund_cents,
                        metadata={
                            "booking_id": ctx.booking_id,
                            "reason": (
                                f"Full refund - {ctx.actor.value.capitalize()} "
                                f"cancellation: {ctx.reason}"
                            ),
                        },
                        idempotency_key=ctx.idempotency_key("balance", "refund"),
                    )
                )
                self.logger.info(
                    f"Balance {intent_id} refunded: ${cents_to_dollars(refund.amount_cents):.2f} "
                    f"(service fee retained: ${cents_to_dollars(retained_fee):.2f})"
                )
            else:
                self.logger.info(f"Balance {intent_id} has nothing refundable beyond the service fee")
        else:
            self.logger.info(
                f"Balance {intent_id} in status {authorization.processor_status} - no action needed"
            )

    # ------------------------------------------------------------------ #
    # Policy applies: keep the fee, return the rest and the service fee
    # ------------------------------------------------------------------ #

    def _settle_with_policy(
        self,
        payment: PaymentRecord,
        evaluation: PolicyEvaluation,
        ctx: _SettlementContext,
        progress: _Progress,
    ) -> float:
        split = split_cancellation_fee(payment, evaluation.charge_percentage)
        self.logger.info(
            f"Cancellation fee for booking {ctx.booking_id}: "
            f"total=${cents_to_dollars(split.total_cents):.2f} "
            f"deposit_share=${cents_to_dollars(split.deposit_cents):.2f} "
            f"balance_share=${cents_to_dollars(split.balance_cents):.2f} "
            f"service_fee_returned=${payment.service_fee:.2f}"
        )

        deposit_cents = dollars_to_cents(payment.deposit_amount)
        if payment.deposit_payment_intent_id and deposit_cents > 0:
            try:
                self._settle_deposit_fee(
                    payment.deposit_payment_intent_id, deposit_cents, split.deposit_cents, ctx
                )
            except PaymentProcessorError as exc:
                raise exc.wrap("deposit", "Failed to handle deposit")
        progress.deposit_refunded = True

        if payment.balance_payment_intent_id:
            try:
                self._settle_balance_fee(
                    payment, payment.balance_payment_intent_id, split.balance_cents, ctx
                )
            except PaymentProcessorError as exc:
                raise exc.wrap("balance", "Failed to handle balance payment")
        progress.balance_cancelled = True

        return cents_to_dollars(split.total_cents)

    def _settle_deposit_fee(
        self,
        intent_id: str,
        deposit_cents: int,
        deposit_fee_cents: int,
        ctx: _SettlementContext,
    ) -> None:
        authorization = self.processor.retrieve_authorization(intent_id)
        if authorization.status == AuthorizationStatus.CAPTURED:
            refund_cents = deposit_cents - deposit_fee_cents
            if refund_cents > 0:
                refund = self.processor.refund(
                    RefundRequest(
                        payment_intent_id=intent_id,
                        amount_cents=refund_cents,
                        metadata={
                            "booking_id": ctx.booking_id,
                            "reason": f"Partial deposit refund - Policy cancellation: {ctx.reason}",
                        },
                        idempotency_key=ctx.idempotency_key("deposit", "refund"),
                    )
                )
                self.logger.info(
                    f"Deposit {intent_id} partially refunded: "
                    f"${cents_to_dollars(refund.amount_cents):.2f} "
                    f"(kept ${cents_to_dollars(deposit_fee_cents):.2f} as cancellation fee)"
                )
            else:
                self.logger.info(f"Deposit {intent_id} kept in full as cancellation fee")
        elif authorization.status == AuthorizationStatus.AUTHORIZED:
            if deposit_fee_cents > 0:
                capture = self.processor.capture(
                    CaptureRequest(
                        payment_intent_id=intent_id,
                        amount_cents=deposit_fee_cents,
                        idempotency_key=ctx.idempotency_key("deposit", "capture"),
                    )
                )
                self.logger.info(
                    f"Deposit {intent_id} partially captured: "
                    f"${cents_to_dollars(capture.amount_received_cents):.2f} as cancellation fee"
                )
            else:
                self.processor.cancel(
                    CancelRequest(
                        payment_intent_id=intent_id,
                        idempotency_key=ctx.idempotency_key("deposit", "cancel"),
                    )
                )
                self.logger.info(f"Uncaptured deposit {intent_id} voided (no deposit fee)")
        else:
            self.logger.info(
                f"Deposit {intent_id} in status {authorization.processor_status} - no action needed"
            )

    def _settle_balance_fee(
        self,
        payment: PaymentRecord,
        intent_id: str,
        balance_fee_cents: int,
        ctx: _SettlementContext,
    ) -> None:
        authorization = self.processor.retrieve_authorization(intent_id)
        balance_cents = authorization.amount_cents

        if authorization.status == AuthorizationStatus.AUTHORIZED:
            self.logger.info(
                f"Balance {intent_id} authorized for ${cents_to_dollars(balance_cents):.2f}: "
                f"capture ${cents_to_dollars(max(balance_fee_cents, 0)):.2f}, "
                f"release ${cents_to_dollars(balance_cents - max(balance_fee_cents, 0)):.2f} "
                f"(includes service fee ${payment.service_fee:.2f})"
            )
            if 0 < balance_fee_cents < balance_cents:
                self._capture_balance_fee(payment, intent_id, balance_fee_cents, ctx)
            elif balance_fee_cents >= balance_cents and balance_fee_cents > 0:
                capture = self.processor.capture(
                    CaptureRequest(
                        payment_intent_id=intent_id,
                        idempotency_key=ctx.idempotency_key("balance", "capture"),
                    )
                )
                self.logger.info(
                    f"Balance {intent_id} captured in full: "
                    f"${cents_to_dollars(capture.amount_received_cents):.2f} "
                    "(cancellation fee covers the whole authorization)"
                )
            else:
                self.processor.cancel(
                    CancelRequest(
                        payment_intent_id=intent_id,
                        idempotency_key=ctx.idempotency_key("balance", "cancel"),
                    )
                )
                self.logger.info(f"Uncaptured balance {intent_id} voided (no balance fee)")
        elif authorization.status == AuthorizationStatus.CAPTURED:
            refund_cents = balance_cents - max(balance_fee_cents, 0)
            if refund_cents > 0:
                refund = self.processor.refund(
                    RefundRequest(
                        payment_intent_id=intent_id,
                        amount_cents=refund_cents,
                        metadata={
                            "booking_id": ctx.booking_id,
                            "reason": f"Partial refund - Policy cancellation: {ctx.reason}",
                        },
                        idempotency_key=ctx.idempotency_key("balance", "refund"),
                    )
                )
                self.logger.info(
                    f"Balance {intent_id} partially refunded: "
                    f"${cents_to_dollars(refund.amount_cents):.2f} "
                    f"(kept ${cents_to_dollars(balance_fee_cents):.2f} as cancellation fee)"
                )
            else:
                self.logger.info(f"Balance {intent_id} kept in full as cancellation fee")
        else:
            self.logger.info(
                f"Balance {intent_id} in status {authorization.processor_status} - no action needed"
            )

    def _capture_balance_fee(
        self,
        payment: PaymentRecord,
        intent_id: str,
        balance_fee_cents: int,
        ctx: _SettlementContext,
    ) -> None:
        try:
            capture = self.processor.capture(
                CaptureRequest(
                    payment_intent_id=intent_id,
                    amount_cents=balance_fee_cents,
                    idempotency_key=ctx.idempotency_key("balance", "capture"),
                )
            )
        except PaymentProcessorError as capture_error:
            self.logger.warning(
                f"Partial capture of balance {intent_id} rejected ({capture_error.message}); "
                "voiding and charging the cancellation fee separately"
            )
            self.processor.cancel(
                CancelRequest(
                    payment_intent_id=intent_id,
                    idempotency_key=ctx.idempotency_key("balance", "cancel"),
                )
            )
            self.logger.info(f"Uncaptured balance {intent_id} voided")
            self.create_separate_cancellation_charge(payment, balance_fee_cents, ctx)
            return

        self.logger.info(
            f"Balance {intent_id} partially captured: "
            f"${cents_to_dollars(capture.amount_received_cents):.2f}"
        )

    # ------------------------------------------------------------------ #
    # Compensating charge
    # ------------------------------------------------------------------ #

    def create_separate_cancellation_charge(
        self,
        payment: PaymentRecord,
        amount_cents: int,
        ctx: _SettlementContext,
    ) -> Optional[ChargeResult]:
        """
        Charge the cancellation fee on its own after the balance authorization was voided.

        Returns ``None`` when the charge could not be created; the cancellation
        still stands and the fee has to be collected out of band.
        """
        self.logger.info(
            f"Creating separate cancellation charge for booking {ctx.booking_id}: "
            f"${cents_to_dollars(amount_cents):.2f}"
        )
        try:
            customer_id = ctx.customer_id
            if not customer_id and self.customer_lookup is not None:
                customer_id = self.customer_lookup(ctx.client_id)
            if not customer_id:
                raise CompensationFailure(
                    "Customer ID not found - cannot create separate charge",
                    booking_id=ctx.booking_id,
                    amount_cents=amount_cents,
                )
            if not payment.payment_method_id:
                raise CompensationFailure(
                    "Payment method not found - cannot create separate charge",
                    booking_id=ctx.booking_id,
                    amount_cents=amount_cents,
                )

            # Platform keeps a flat fee; the professional receives the rest
            professional_share = amount_cents - self.flat_platform_fee_cents
            transfer = None
            if ctx.policy.payout_account_id and professional_share > 0:
                transfer = DestinationTransfer(
                    destination_account_id=ctx.policy.payout_account_id,
                    amount_cents=professional_share,
                )

            charge = self.processor.create_charge(
                ChargeRequest(
                    amount_cents=amount_cents,
                    currency=self.currency,
                    customer_id=customer_id,
                    payment_method_id=payment.payment_method_id,
                    metadata={
                        "booking_id": ctx.booking_id,
                        "payment_type": "cancellation_fee",
                        "reason": ctx.reason,
                    },
                    transfer=transfer,
                    idempotency_key=ctx.idempotency_key("balance", "fee_charge"),
                )
            )
        except Exception as exc:
            message = getattr(exc, "message", None) or str(exc)
            self.logger.error(
                f"Failed to create separate cancellation charge for booking {ctx.booking_id}: "
                f"{message}; continuing with cancellation",
                exc_info=not isinstance(exc, (CompensationFailure, PaymentProcessorError)),
            )
            prometheus_metrics.record_cancellation_fee_charge("error")
            return None

        self.logger.info(
            f"Cancellation charge created: {charge.payment_intent_id} - "
            f"${cents_to_dollars(charge.amount_cents):.2f}"
        )
        prometheus_metrics.record_cancellation_fee_charge("success")
        return charge
