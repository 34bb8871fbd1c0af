"""
Payment processor boundary used by cancellation settlement.

Settlement code talks to the processor only through ``PaymentProcessor`` and the
request/result types below. Amounts crossing this boundary are integer minor
units (cents); processor statuses are mapped to ``AuthorizationStatus`` here and
nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Dict, List, Optional, Protocol, Tuple
from uuid import uuid4

from ..constants.payment_status import AuthorizationStatus, map_authorization_status
from ..core.exceptions import PaymentProcessorError

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def dollars_to_cents(value: float) -> int:
    return round_half_up(float(value) * 100)


def cents_to_dollars(cents: int) -> float:
    return round(cents / 100.0, 2)


@dataclass(frozen=True)
class PaymentAuthorization:
    id: str
    status: AuthorizationStatus
    amount_cents: int
    amount_received_cents: int = 0
    processor_status: str = ""


@dataclass(frozen=True)
class CaptureRequest:
    payment_intent_id: str
    # None captures the full authorized amount
    amount_cents: Optional[int] = None
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class CancelRequest:
    payment_intent_id: str
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class RefundRequest:
    payment_intent_id: str
    # None refunds whatever is still refundable
    amount_cents: Optional[int] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class DestinationTransfer:
    destination_account_id: str
    amount_cents: int


@dataclass(frozen=True)
class ChargeRequest:
    amount_cents: int
    currency: str
    customer_id: str
    payment_method_id: str
    metadata: Dict[str, str] = field(default_factory=dict)
    transfer: Optional[DestinationTransfer] = None
    off_session: bool = True
    confirm: bool = True
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class CaptureResult:
    payment_intent_id: str
    amount_received_cents: int
    status: AuthorizationStatus


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    amount_cents: int
    status: str


@dataclass(frozen=True)
class ChargeResult:
    payment_intent_id: str
    amount_cents: int
    status: AuthorizationStatus


class PaymentProcessor(Protocol):
    def retrieve_authorization(self, payment_intent_id: str) -> PaymentAuthorization: ...

    def capture(self, request: CaptureRequest) -> CaptureResult: ...

    def cancel(self, request: CancelRequest) -> PaymentAuthorization: ...

    def refund(self, request: RefundRequest) -> RefundResult: ...

    def create_charge(self, request: ChargeRequest) -> ChargeResult: ...


@dataclass
class _FakeIntent:
    id: str
    processor_status: str
    amount_cents: int
    amount_received_cents: int = 0
    refunded_cents: int = 0


class FakePaymentProcessor:
    """In-memory processor that mimics Stripe PaymentIntent semantics for dev and tests."""

    def __init__(
        self,
        *,
        reject_partial_capture: bool = False,
        fail_charges: bool = False,
    ) -> None:
        self.reject_partial_capture = reject_partial_capture
        self.fail_charges = fail_charges
        self.failures: Dict[Tuple[str, str], PaymentProcessorError] = {}
        self.calls: List[Tuple[str, object]] = []
        self._intents: Dict[str, _FakeIntent] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def add_intent(
        self,
        payment_intent_id: str,
        *,
        status: str,
        amount_cents: int,
    ) -> None:
        received = amount_cents if status == "succeeded" else 0
        self._intents[payment_intent_id] = _FakeIntent(
            id=payment_intent_id,
            processor_status=status,
            amount_cents=amount_cents,
            amount_received_cents=received,
        )

    def fail_next(self, operation: str, payment_intent_id: str, message: str, code: str) -> None:
        """Make the next ``operation`` against ``payment_intent_id`` raise."""
        self.failures[(operation, payment_intent_id)] = PaymentProcessorError(
            message, processor_code=code
        )

    def intent(self, payment_intent_id: str) -> _FakeIntent:
        return self._get(payment_intent_id)

    def operations(self, operation: Optional[str] = None) -> List[object]:
        return [req for op, req in self.calls if operation is None or op == operation]

    def retrieve_authorization(self, payment_intent_id: str) -> PaymentAuthorization:
        self.calls.append(("retrieve", payment_intent_id))
        self._maybe_fail("retrieve", payment_intent_id)
        return self._snapshot(self._get(payment_intent_id))

    def capture(self, request: CaptureRequest) -> CaptureResult:
        self.calls.append(("capture", request))
        self._maybe_fail("capture", request.payment_intent_id)
        intent = self._get(request.payment_intent_id)
        if intent.processor_status != "requires_capture":
            raise PaymentProcessorError(
                f"PaymentIntent {intent.id} cannot be captured in status {intent.processor_status}",
                processor_code="payment_intent_unexpected_state",
            )
        amount = intent.amount_cents if request.amount_cents is None else request.amount_cents
        if amount <= 0 or amount > intent.amount_cents:
            raise PaymentProcessorError(
                f"Invalid capture amount {amount} for {intent.id}",
                processor_code="amount_too_large" if amount > 0 else "parameter_invalid_integer",
            )
        if amount < intent.amount_cents and self.reject_partial_capture:
            raise PaymentProcessorError(
                "This PaymentIntent does not support partial capture",
                processor_code="capture_amount_invalid",
            )
        intent.processor_status = "succeeded"
        intent.amount_received_cents = amount
        return CaptureResult(
            payment_intent_id=intent.id,
            amount_received_cents=amount,
            status=map_authorization_status(intent.processor_status),
        )

    def cancel(self, request: CancelRequest) -> PaymentAuthorization:
        self.calls.append(("cancel", request))
        self._maybe_fail("cancel", request.payment_intent_id)
        intent = self._get(request.payment_intent_id)
        if intent.processor_status in {"succeeded", "canceled"}:
            raise PaymentProcessorError(
                f"PaymentIntent {intent.id} cannot be canceled in status {intent.processor_status}",
                processor_code="payment_intent_unexpected_state",
            )
        intent.processor_status = "canceled"
        return self._snapshot(intent)

    def refund(self, request: RefundRequest) -> RefundResult:
        self.calls.append(("refund", request))
        self._maybe_fail("refund", request.payment_intent_id)
        intent = self._get(request.payment_intent_id)
        if intent.processor_status != "succeeded":
            raise PaymentProcessorError(
                f"PaymentIntent {intent.id} has no successful charge to refund",
                processor_code="charge_not_refundable",
            )
        remaining = intent.amount_received_cents - intent.refunded_cents
        amount = remaining if request.amount_cents is None else request.amount_cents
        if amount <= 0 or amount > remaining:
            raise PaymentProcessorError(
                f"Refund amount {amount} exceeds refundable {remaining} for {intent.id}",
                processor_code="amount_too_large",
            )
        intent.refunded_cents += amount
        return RefundResult(refund_id=f"re_fake_{uuid4().hex}", amount_cents=amount, status="succeeded")

    def create_charge(self, request: ChargeRequest) -> ChargeResult:
        self.calls.append(("create_charge", request))
        if self.fail_charges:
            raise PaymentProcessorError(
                "Your card was declined.", processor_code="card_declined"
            )
        intent_id = f"pi_fake_{uuid4().hex}"
        self._intents[intent_id] = _FakeIntent(
            id=intent_id,
            processor_status="succeeded",
            amount_cents=request.amount_cents,
            amount_received_cents=request.amount_cents,
        )
        self._logger.debug("Fake charge created", extra={"payment_intent_id": intent_id})
        return ChargeResult(
            payment_intent_id=intent_id,
            amount_cents=request.amount_cents,
            status=AuthorizationStatus.CAPTURED,
        )

    def _get(self, payment_intent_id: str) -> _FakeIntent:
        intent = self._intents.get(payment_intent_id)
        if intent is None:
            raise PaymentProcessorError(
                f"No such payment_intent: '{payment_intent_id}'",
                processor_code="resource_missing",
            )
        return intent

    def _maybe_fail(self, operation: str, payment_intent_id: str) -> None:
        error = self.failures.pop((operation, payment_intent_id), None)
        if error is not None:
            raise error

    @staticmethod
    def _snapshot(intent: _FakeIntent) -> PaymentAuthorization:
        return PaymentAuthorization(
            id=intent.id,
            status=map_authorization_status(intent.processor_status),
            amount_cents=intent.amount_cents,
            amount_received_cents=intent.amount_received_cents,
            processor_status=intent.processor_status,
        )
