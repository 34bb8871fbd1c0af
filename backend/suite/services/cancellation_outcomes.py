"""Cancellation settlement records and the pure helpers derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..constants.payment_status import PaymentSettlementStatus
from .cancellation_policy_engine import CancellationActor


@dataclass(frozen=True)
class PaymentRecord:
    """
    Money already authorized or captured for one booking.

    All amounts are dollars. ``balance_payment_intent_id`` is the authorization
    for the remaining service amount plus the platform service fee.
    """

    id: str
    amount: float
    tip_amount: float = 0.0
    service_fee: float = 0.0
    deposit_amount: float = 0.0
    balance_amount: float = 0.0
    deposit_payment_intent_id: Optional[str] = None
    balance_payment_intent_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    status: str = ""

    @property
    def service_price(self) -> float:
        """Fee base for the cancellation policy: service price plus tip."""
        return float(self.amount) + float(self.tip_amount or 0)

    @classmethod
    def from_model(cls, payment: Any) -> "PaymentRecord":
        return cls(
            id=str(payment.id),
            amount=float(payment.amount or 0),
            tip_amount=float(payment.tip_amount or 0),
            service_fee=float(payment.service_fee or 0),
            deposit_amount=float(payment.deposit_amount or 0),
            balance_amount=float(payment.balance_amount or payment.amount or 0),
            deposit_payment_intent_id=payment.deposit_payment_intent_id,
            balance_payment_intent_id=payment.stripe_payment_intent_id,
            payment_method_id=payment.stripe_payment_method_id,
            status=str(payment.status or ""),
        )


@dataclass(frozen=True)
class SettlementResult:
    deposit_refunded: bool
    balance_cancelled: bool
    # Dollars retained as the cancellation fee
    charge_amount: float
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def derive_payment_status(result: SettlementResult) -> PaymentSettlementStatus:
    """Map a settlement result to the status persisted on the booking payment."""
    if result.error:
        return PaymentSettlementStatus.FAILED
    if result.charge_amount > 0:
        return PaymentSettlementStatus.PARTIALLY_REFUNDED
    if result.deposit_refunded or result.balance_cancelled:
        return PaymentSettlementStatus.REFUNDED
    return PaymentSettlementStatus.CANCELLED


def calculate_refund_amount(
    payment: PaymentRecord,
    *,
    actor: CancellationActor,
    charge_amount: float,
) -> float:
    """
    Dollars returned to the client, for audit records and display.

    Professionals cancelling return everything the client paid. Client
    cancellations keep the service fee and any cancellation charge.
    """
    total_paid = payment.service_price
    if actor == CancellationActor.PROFESSIONAL:
        return round(total_paid, 2)
    refund = total_paid - float(payment.service_fee or 0) - float(charge_amount or 0)
    return max(0.0, round(refund, 2))
