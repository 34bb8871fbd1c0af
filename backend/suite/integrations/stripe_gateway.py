"""
Stripe implementation of the ``PaymentProcessor`` boundary.

The gateway is a constructed object owned by its caller: it keeps its own API
key and passes it on every request instead of configuring ``stripe.api_key``
for the whole process.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import SecretStr
import stripe

from ..constants.payment_status import map_authorization_status
from ..core.exceptions import PaymentProcessorError
from .payment_processor import (
    CancelRequest,
    CaptureRequest,
    CaptureResult,
    ChargeRequest,
    ChargeResult,
    PaymentAuthorization,
    RefundRequest,
    RefundResult,
)

logger = logging.getLogger(__name__)


def _int_field(obj: Any, name: str) -> int:
    value = getattr(obj, name, None)
    if value is None and hasattr(obj, "get"):
        value = obj.get(name)
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _to_processor_error(exc: stripe.StripeError, action: str) -> PaymentProcessorError:
    message = getattr(exc, "user_message", None) or str(exc) or "Stripe request failed"
    return PaymentProcessorError(
        f"Stripe {action} failed: {message}",
        processor_code=getattr(exc, "code", None),
        details={"http_status": getattr(exc, "http_status", None)},
    )


class StripePaymentGateway:
    """PaymentIntent and Refund operations against the Stripe API."""

    def __init__(self, *, api_key: str | SecretStr, stripe_account: Optional[str] = None) -> None:
        secret_value = api_key.get_secret_value() if isinstance(api_key, SecretStr) else api_key
        if not secret_value:
            raise ValueError("Stripe API key must be provided")
        self._api_key = secret_value
        self._stripe_account = stripe_account
        self.logger = logging.getLogger(self.__class__.__name__)

    def _request_options(self, idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        options: Dict[str, Any] = {"api_key": self._api_key}
        if self._stripe_account:
            options["stripe_account"] = self._stripe_account
        if idempotency_key:
            options["idempotency_key"] = idempotency_key
        return options

    def retrieve_authorization(self, payment_intent_id: str) -> PaymentAuthorization:
        try:
            pi = stripe.PaymentIntent.retrieve(payment_intent_id, **self._request_options())
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error retrieving payment intent {payment_intent_id}: {e}")
            raise _to_processor_error(e, "retrieve")
        return self._authorization_from_intent(pi)

    def capture(self, request: CaptureRequest) -> CaptureResult:
        params: Dict[str, Any] = {}
        if request.amount_cents is not None:
            params["amount_to_capture"] = request.amount_cents
        try:
            pi = stripe.PaymentIntent.capture(
                request.payment_intent_id,
                **params,
                **self._request_options(request.idempotency_key),
            )
        except stripe.StripeError as e:
            self.logger.error(
                f"Stripe error capturing payment intent {request.payment_intent_id}: {e}"
            )
            raise _to_processor_error(e, "capture")
        return CaptureResult(
            payment_intent_id=str(pi.id),
            amount_received_cents=_int_field(pi, "amount_received"),
            status=map_authorization_status(getattr(pi, "status", None)),
        )

    def cancel(self, request: CancelRequest) -> PaymentAuthorization:
        try:
            pi = stripe.PaymentIntent.cancel(
                request.payment_intent_id, **self._request_options(request.idempotency_key)
            )
        except stripe.StripeError as e:
            self.logger.error(
                f"Stripe error canceling payment intent {request.payment_intent_id}: {e}"
            )
            raise _to_processor_error(e, "cancel")
        return self._authorization_from_intent(pi)

    def refund(self, request: RefundRequest) -> RefundResult:
        params: Dict[str, Any] = {"payment_intent": request.payment_intent_id}
        if request.amount_cents is not None:
            params["amount"] = request.amount_cents
        if request.metadata:
            params["metadata"] = dict(request.metadata)
        try:
            refund = stripe.Refund.create(
                **params, **self._request_options(request.idempotency_key)
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error refunding {request.payment_intent_id}: {e}")
            raise _to_processor_error(e, "refund")
        return RefundResult(
            refund_id=str(refund.id),
            amount_cents=_int_field(refund, "amount"),
            status=str(getattr(refund, "status", "") or ""),
        )

    def create_charge(self, request: ChargeRequest) -> ChargeResult:
        params: Dict[str, Any] = {
            "amount": request.amount_cents,
            "currency": request.currency,
            "customer": request.customer_id,
            "payment_method": request.payment_method_id,
            "confirm": request.confirm,
            "off_session": request.off_session,
            "metadata": dict(request.metadata),
        }
        if request.transfer is not None:
            params["transfer_data"] = {
                "destination": request.transfer.destination_account_id,
                "amount": request.transfer.amount_cents,
            }
            params["on_behalf_of"] = request.transfer.destination_account_id
        try:
            pi = stripe.PaymentIntent.create(
                **params, **self._request_options(request.idempotency_key)
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error creating charge for {request.customer_id}: {e}")
            raise _to_processor_error(e, "charge")
        return ChargeResult(
            payment_intent_id=str(pi.id),
            amount_cents=_int_field(pi, "amount"),
            status=map_authorization_status(getattr(pi, "status", None)),
        )

    @staticmethod
    def _authorization_from_intent(pi: Any) -> PaymentAuthorization:
        raw_status = str(getattr(pi, "status", "") or "")
        return PaymentAuthorization(
            id=str(pi.id),
            status=map_authorization_status(raw_status),
            amount_cents=_int_field(pi, "amount"),
            amount_received_cents=_int_field(pi, "amount_received"),
            processor_status=raw_status,
        )
