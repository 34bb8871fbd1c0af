from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from suite.services.cancellation_policy_engine import (
    CancellationActor,
    CancellationPolicy,
    CancellationPolicyEngine,
    describe_time_window,
    hours_between,
)

NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


def _policy(pct_24h=50, pct_48h=25, enabled=True) -> CancellationPolicy:
    return CancellationPolicy(
        enabled=enabled,
        within_24h_percentage=pct_24h,
        within_48h_percentage=pct_48h,
    )


@pytest.fixture
def engine() -> CancellationPolicyEngine:
    return CancellationPolicyEngine(default_24h_percentage=50, default_48h_percentage=25)


class TestCancellationPolicyEngine:
    @pytest.mark.parametrize("hours", [48, 48.01, 72, 24 * 30])
    def test_no_fee_at_or_beyond_48_hours(self, engine, hours) -> None:
        result = engine.evaluate(
            NOW + timedelta(hours=hours),
            policy=_policy(pct_24h=100, pct_48h=100),
            actor=CancellationActor.CLIENT,
            now=NOW,
        )

        assert result.charge_percentage == 0
        assert result.is_within_policy_period is False
        assert result.applies is False

    @pytest.mark.parametrize("hours", [24, 30, 47.99])
    def test_48h_window_uses_48h_percentage(self, engine, hours) -> None:
        result = engine.evaluate(
            NOW + timedelta(hours=hours),
            policy=_policy(pct_24h=80, pct_48h=30),
            actor=CancellationActor.CLIENT,
            now=NOW,
        )

        assert result.charge_percentage == 30
        assert result.is_within_policy_period is True

    @pytest.mark.parametrize("hours", [23.99, 10, 0.5, -2])
    def test_24h_window_uses_24h_percentage(self, engine, hours) -> None:
        result = engine.evaluate(
            NOW + timedelta(hours=hours),
            policy=_policy(pct_24h=80, pct_48h=30),
            actor=CancellationActor.CLIENT,
            now=NOW,
        )

        assert result.charge_percentage == 80
        assert result.is_within_policy_period is True

    def test_unset_percentages_fall_back_to_defaults(self, engine) -> None:
        policy = _policy(pct_24h=None, pct_48h=None)

        within_24h = engine.evaluate(
            NOW + timedelta(hours=5), policy=policy, actor=CancellationActor.CLIENT, now=NOW
        )
        within_48h = engine.evaluate(
            NOW + timedelta(hours=36), policy=policy, actor=CancellationActor.CLIENT, now=NOW
        )

        assert within_24h.charge_percentage == 50
        assert within_48h.charge_percentage == 25

    def test_explicit_zero_percentage_is_kept(self, engine) -> None:
        result = engine.evaluate(
            NOW + timedelta(hours=5),
            policy=_policy(pct_24h=0, pct_48h=0),
            actor=CancellationActor.CLIENT,
            now=NOW,
        )

        assert result.charge_percentage == 0
        assert result.is_within_policy_period is True
        assert result.applies is False

    def test_disabled_policy_never_charges(self, engine) -> None:
        result = engine.evaluate(
            NOW + timedelta(hours=2),
            policy=_policy(enabled=False),
            actor=CancellationActor.CLIENT,
            now=NOW,
        )

        assert result.charge_percentage == 0
        assert result.is_within_policy_period is False

    def test_missing_policy_never_charges(self, engine) -> None:
        result = engine.evaluate(
            NOW + timedelta(hours=2), policy=None, actor=CancellationActor.CLIENT, now=NOW
        )

        assert result.charge_percentage == 0

    @pytest.mark.parametrize("hours", [1, 30, 100])
    def test_professional_cancellation_without_force_is_free(self, engine, hours) -> None:
        result = engine.evaluate(
            NOW + timedelta(hours=hours),
            policy=_policy(),
            actor=CancellationActor.PROFESSIONAL,
            now=NOW,
        )

        assert result.charge_percentage == 0
        assert result.is_within_policy_period is False

    def test_professional_cancellation_with_force_applies_policy(self, engine) -> None:
        result = engine.evaluate(
            NOW + timedelta(hours=10),
            policy=_policy(),
            actor=CancellationActor.PROFESSIONAL,
            force_policy=True,
            now=NOW,
        )

        assert result.charge_percentage == 50
        assert result.applies is True

    def test_naive_start_time_is_treated_as_utc(self, engine) -> None:
        naive_start = (NOW + timedelta(hours=30)).replace(tzinfo=None)

        result = engine.evaluate(
            naive_start, policy=_policy(), actor=CancellationActor.CLIENT, now=NOW
        )

        assert result.hours_until_appointment == pytest.approx(30)
        assert result.charge_percentage == 25

    def test_defaults_come_from_settings(self, monkeypatch) -> None:
        from suite.services import cancellation_policy_engine as module

        monkeypatch.setattr(module.settings, "cancellation_default_24h_percentage", 70)
        monkeypatch.setattr(module.settings, "cancellation_default_48h_percentage", 35)

        engine = CancellationPolicyEngine()

        assert engine.default_24h_percentage == 70
        assert engine.default_48h_percentage == 35


class TestCancellationPolicy:
    def test_from_profile_reads_policy_columns(self) -> None:
        profile = SimpleNamespace(
            cancellation_policy_enabled=True,
            cancellation_24h_charge_percentage=60,
            cancellation_48h_charge_percentage=None,
            stripe_account_id="acct_123",
        )

        policy = CancellationPolicy.from_profile(profile)

        assert policy.enabled is True
        assert policy.within_24h_percentage == 60
        assert policy.within_48h_percentage is None
        assert policy.payout_account_id == "acct_123"

    def test_from_missing_profile_is_disabled(self) -> None:
        assert CancellationPolicy.from_profile(None) == CancellationPolicy()


def test_hours_between_handles_mixed_timezones() -> None:
    start = datetime(2026, 3, 2, 20, 0, tzinfo=timezone(timedelta(hours=5)))

    assert hours_between(start, NOW) == pytest.approx(0.0)


@pytest.mark.parametrize(
    "hours,label",
    [
        (0, "Less than 24 hours"),
        (23.9, "Less than 24 hours"),
        (24, "Less than 48 hours"),
        (47.9, "Less than 48 hours"),
        (48, "More than 48 hours"),
    ],
)
def test_describe_time_window(hours, label) -> None:
    assert describe_time_window(hours) == label
