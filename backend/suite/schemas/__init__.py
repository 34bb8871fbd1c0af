# backend/suite/schemas/__init__.py
"""Pydantic schemas for the Suite backend."""

from .cancellation import (
    BookingCancelRequest,
    CancellationEligibility,
    CancellationOutcome,
    CancellationPolicyPreview,
    CancellationPolicySettings,
    CancellationPolicySettingsResponse,
)

__all__ = [
    "BookingCancelRequest",
    "CancellationEligibility",
    "CancellationOutcome",
    "CancellationPolicyPreview",
    "CancellationPolicySettings",
    "CancellationPolicySettingsResponse",
]
