"""Time-based cancellation fee policy evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from ..core.config import settings

WITHIN_24H = 24
WITHIN_48H = 48


class CancellationActor(str, Enum):
    CLIENT = "client"
    PROFESSIONAL = "professional"


@dataclass(frozen=True)
class CancellationPolicy:
    """A professional's cancellation policy as read at cancellation time."""

    enabled: bool = False
    within_24h_percentage: Optional[int] = None
    within_48h_percentage: Optional[int] = None
    payout_account_id: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: Any) -> "CancellationPolicy":
        if profile is None:
            return cls()
        return cls(
            enabled=bool(getattr(profile, "cancellation_policy_enabled", False)),
            within_24h_percentage=getattr(profile, "cancellation_24h_charge_percentage", None),
            within_48h_percentage=getattr(profile, "cancellation_48h_charge_percentage", None),
            payout_account_id=getattr(profile, "stripe_account_id", None),
        )


@dataclass(frozen=True)
class PolicyEvaluation:
    charge_percentage: int
    is_within_policy_period: bool
    hours_until_appointment: float
    policy_basis: str = ""

    @property
    def applies(self) -> bool:
        return self.is_within_policy_period and self.charge_percentage > 0


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_between(start: datetime, now: datetime) -> float:
    return (ensure_utc(start) - ensure_utc(now)).total_seconds() / 3600


class CancellationPolicyEngine:
    """Determines the cancellation fee percentage from the time left before an appointment."""

    def __init__(
        self,
        *,
        default_24h_percentage: Optional[int] = None,
        default_48h_percentage: Optional[int] = None,
    ) -> None:
        self.default_24h_percentage = (
            settings.cancellation_default_24h_percentage
            if default_24h_percentage is None
            else default_24h_percentage
        )
        self.default_48h_percentage = (
            settings.cancellation_default_48h_percentage
            if default_48h_percentage is None
            else default_48h_percentage
        )

    def evaluate(
        self,
        start_time: datetime,
        *,
        policy: Optional[CancellationPolicy],
        actor: CancellationActor,
        force_policy: bool = False,
        now: Optional[datetime] = None,
    ) -> PolicyEvaluation:
        hours_until = hours_between(start_time, now or datetime.now(timezone.utc))

        if policy is None or not policy.enabled:
            return PolicyEvaluation(
                charge_percentage=0,
                is_within_policy_period=False,
                hours_until_appointment=hours_until,
                policy_basis="No cancellation policy configured",
            )

        if actor == CancellationActor.PROFESSIONAL and not force_policy:
            return PolicyEvaluation(
                charge_percentage=0,
                is_within_policy_period=False,
                hours_until_appointment=hours_until,
                policy_basis="Professional cancellation: no fee",
            )

        if hours_until < WITHIN_24H:
            pct = (
                self.default_24h_percentage
                if policy.within_24h_percentage is None
                else int(policy.within_24h_percentage)
            )
            return PolicyEvaluation(
                charge_percentage=pct,
                is_within_policy_period=True,
                hours_until_appointment=hours_until,
                policy_basis=f"<24 hours before appointment: {pct}% cancellation fee",
            )

        if hours_until < WITHIN_48H:
            pct = (
                self.default_48h_percentage
                if policy.within_48h_percentage is None
                else int(policy.within_48h_percentage)
            )
            return PolicyEvaluation(
                charge_percentage=pct,
                is_within_policy_period=True,
                hours_until_appointment=hours_until,
                policy_basis=f"24-48 hours before appointment: {pct}% cancellation fee",
            )

        return PolicyEvaluation(
            charge_percentage=0,
            is_within_policy_period=False,
            hours_until_appointment=hours_until,
            policy_basis=">=48 hours before appointment: no fee",
        )


def describe_time_window(hours_until_appointment: float) -> str:
    if hours_until_appointment < WITHIN_24H:
        return "Less than 24 hours"
    if hours_until_appointment < WITHIN_48H:
        return "Less than 48 hours"
    return "More than 48 hours"
