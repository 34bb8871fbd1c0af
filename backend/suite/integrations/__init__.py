"""External service integrations for the Suite backend."""

from .payment_processor import FakePaymentProcessor, PaymentProcessor
from .stripe_gateway import StripePaymentGateway

__all__ = ["FakePaymentProcessor", "PaymentProcessor", "StripePaymentGateway"]
