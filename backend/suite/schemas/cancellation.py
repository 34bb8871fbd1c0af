# backend/suite/schemas/cancellation.py
"""
Cancellation schemas.

Request models validate what a client or professional submits; response
models carry the cancellation preview and the settlement outcome back to the
caller.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BookingCancelRequest(BaseModel):
    """Schema for cancelling a booking."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    reason: str = Field(..., min_length=1, max_length=500, description="Cancellation reason")
    force_policy: bool = Field(
        default=False,
        description="Apply the professional's fee policy even when the professional cancels",
    )

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: str) -> str:
        """Ensure reason is not empty."""
        v = v.strip()
        if not v:
            raise ValueError("Cancellation reason cannot be empty")
        return v


class CancellationPolicySettingsBase(BaseModel):
    cancellation_policy_enabled: bool = False
    cancellation_24h_charge_percentage: int = Field(default=50, ge=0, le=100)
    cancellation_48h_charge_percentage: int = Field(default=25, ge=0, le=100)


class CancellationPolicySettings(CancellationPolicySettingsBase):
    """Settings submitted by a professional."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @model_validator(mode="after")
    def validate_window_order(self) -> "CancellationPolicySettings":
        # Cancelling closer to the appointment never costs less
        if self.cancellation_24h_charge_percentage < self.cancellation_48h_charge_percentage:
            raise ValueError(
                "24-hour cancellation fee must be greater than or equal to 48-hour fee"
            )
        return self


class CancellationPolicySettingsResponse(CancellationPolicySettingsBase):
    """Settings as read back from the profile; window order is not enforced."""


class CancellationEligibility(BaseModel):
    can_cancel: bool
    reason: Optional[str] = None


class CancellationPolicyPreview(BaseModel):
    """What cancelling right now would cost."""

    has_policy: bool
    charge_percentage: int = 0
    charge_amount: float = Field(default=0.0, description="Cancellation fee in dollars")
    refund_amount: float = Field(default=0.0, description="Projected refund in dollars")
    hours_until_appointment: float
    time_window: str


class CancellationOutcome(BaseModel):
    """Result of cancelling a booking and settling its payment."""

    success: bool
    booking_id: str
    payment_status: Optional[str] = None
    charge_amount: float = 0.0
    refund_amount: float = 0.0
    error: Optional[str] = None
