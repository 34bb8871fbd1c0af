"""Shared payment status mapping helpers."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class AuthorizationStatus(str, Enum):
    """Processor-side state of a single payment authorization."""

    AUTHORIZED = "authorized"  # held, not yet captured
    CAPTURED = "captured"
    VOIDED = "voided"
    OTHER = "other"


class PaymentSettlementStatus(str, Enum):
    """Status persisted on a booking payment once a cancellation has been settled."""

    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    CANCELLED = "cancelled"
    FAILED = "failed"


STRIPE_TO_AUTHORIZATION_STATUS = {
    "requires_capture": AuthorizationStatus.AUTHORIZED,
    "succeeded": AuthorizationStatus.CAPTURED,
    "canceled": AuthorizationStatus.VOIDED,
    "cancelled": AuthorizationStatus.VOIDED,
}


def map_authorization_status(stripe_status: Optional[str]) -> AuthorizationStatus:
    """Map a Stripe PaymentIntent status onto the authorization states settlement acts on."""
    if not stripe_status:
        return AuthorizationStatus.OTHER
    return STRIPE_TO_AUTHORIZATION_STATUS.get(stripe_status, AuthorizationStatus.OTHER)
