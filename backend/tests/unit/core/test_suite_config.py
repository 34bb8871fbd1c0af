from __future__ import annotations

import logging

from pydantic import SecretStr, ValidationError
import pytest

from suite.core import logging_setup
from suite.core.config import Settings, is_running_tests


class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        for name in (
            "CANCELLATION_FLAT_PLATFORM_FEE_CENTS",
            "CANCELLATION_DEFAULT_24H_PERCENTAGE",
            "CANCELLATION_DEFAULT_48H_PERCENTAGE",
            "STRIPE_SECRET_KEY",
            "STRIPE_CURRENCY",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.cancellation_flat_platform_fee_cents == 100
        assert settings.cancellation_default_24h_percentage == 50
        assert settings.cancellation_default_48h_percentage == 25
        assert settings.stripe_currency == "usd"
        assert settings.stripe_configured is False

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("CANCELLATION_DEFAULT_24H_PERCENTAGE", "75")
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_abc")

        settings = Settings(_env_file=None)

        assert settings.cancellation_default_24h_percentage == 75
        assert settings.stripe_configured is True
        assert isinstance(settings.stripe_secret_key, SecretStr)

    @pytest.mark.parametrize("value", [-1, 101])
    def test_percentages_validated(self, value) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, cancellation_default_48h_percentage=value)

    def test_negative_flat_fee_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, cancellation_flat_platform_fee_cents=-5)


def test_is_running_tests() -> None:
    assert is_running_tests() is True


def test_configure_logging_quiets_stripe(monkeypatch) -> None:
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

    logging_setup.configure_logging("debug")

    assert calls["level"] == "DEBUG"
    assert calls["format"] == logging_setup.LOG_FORMAT
    assert logging.getLogger("stripe").level == logging.WARNING
