from __future__ import annotations

import pytest

from suite.constants.payment_status import AuthorizationStatus
from suite.core.exceptions import PaymentProcessorError
from suite.integrations.payment_processor import (
    CancelRequest,
    CaptureRequest,
    ChargeRequest,
    FakePaymentProcessor,
    RefundRequest,
    cents_to_dollars,
    dollars_to_cents,
)


@pytest.mark.parametrize(
    "dollars,cents",
    [(19.99, 1999), (0.29, 29), (150.0, 15000), (0.005, 1), (0.125, 13)],
)
def test_dollars_to_cents_rounds_half_up(dollars, cents) -> None:
    assert dollars_to_cents(dollars) == cents


def test_cents_to_dollars() -> None:
    assert cents_to_dollars(7500) == 75.0
    assert cents_to_dollars(1999) == 19.99


class TestFakePaymentProcessor:
    def test_partial_capture_then_refund(self) -> None:
        processor = FakePaymentProcessor()
        processor.add_intent("pi_1", status="requires_capture", amount_cents=5000)

        capture = processor.capture(CaptureRequest("pi_1", amount_cents=2000))
        refund = processor.refund(RefundRequest("pi_1", amount_cents=500))

        assert capture.status is AuthorizationStatus.CAPTURED
        assert capture.amount_received_cents == 2000
        assert refund.amount_cents == 500
        assert processor.intent("pi_1").refunded_cents == 500

    def test_rejects_partial_capture_when_configured(self) -> None:
        processor = FakePaymentProcessor(reject_partial_capture=True)
        processor.add_intent("pi_1", status="requires_capture", amount_cents=5000)

        with pytest.raises(PaymentProcessorError) as exc_info:
            processor.capture(CaptureRequest("pi_1", amount_cents=2000))

        assert exc_info.value.processor_code == "capture_amount_invalid"
        assert processor.intent("pi_1").processor_status == "requires_capture"
        # Full capture is still allowed
        processor.capture(CaptureRequest("pi_1"))
        assert processor.intent("pi_1").amount_received_cents == 5000

    def test_cannot_cancel_captured_intent(self) -> None:
        processor = FakePaymentProcessor()
        processor.add_intent("pi_1", status="succeeded", amount_cents=5000)

        with pytest.raises(PaymentProcessorError):
            processor.cancel(CancelRequest("pi_1"))

    def test_refund_cannot_exceed_remaining(self) -> None:
        processor = FakePaymentProcessor()
        processor.add_intent("pi_1", status="succeeded", amount_cents=5000)
        processor.refund(RefundRequest("pi_1", amount_cents=4000))

        with pytest.raises(PaymentProcessorError):
            processor.refund(RefundRequest("pi_1", amount_cents=2000))

    def test_refund_requires_capture(self) -> None:
        processor = FakePaymentProcessor()
        processor.add_intent("pi_1", status="requires_capture", amount_cents=5000)

        with pytest.raises(PaymentProcessorError) as exc_info:
            processor.refund(RefundRequest("pi_1"))

        assert exc_info.value.processor_code == "charge_not_refundable"

    def test_fail_next_raises_once(self) -> None:
        processor = FakePaymentProcessor()
        processor.add_intent("pi_1", status="requires_capture", amount_cents=5000)
        processor.fail_next("retrieve", "pi_1", "Network error", "api_connection_error")

        with pytest.raises(PaymentProcessorError, match="Network error"):
            processor.retrieve_authorization("pi_1")

        assert processor.retrieve_authorization("pi_1").status is AuthorizationStatus.AUTHORIZED

    def test_create_charge_records_captured_intent(self) -> None:
        processor = FakePaymentProcessor()

        charge = processor.create_charge(
            ChargeRequest(amount_cents=750, currency="usd", customer_id="cus", payment_method_id="pm")
        )

        assert charge.status is AuthorizationStatus.CAPTURED
        assert processor.intent(charge.payment_intent_id).amount_received_cents == 750
        assert [op for op, _ in processor.calls] == ["create_charge"]

    def test_unknown_intent(self) -> None:
        with pytest.raises(PaymentProcessorError) as exc_info:
            FakePaymentProcessor().retrieve_authorization("pi_missing")

        assert exc_info.value.processor_code == "resource_missing"
