"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from dynfee.config import AppSettings, FeeSettings
from dynfee.uint import UINT24_MAX


def test_default_fee_parameters() -> None:
    fees = FeeSettings()

    assert (fees.min_fee, fees.max_fee) == (500, 10000)
    assert (fees.volume_weight, fees.liquidity_weight, fees.volatility_weight) == (
        40,
        30,
        30,
    )
    assert fees.window_seconds == 86400


def test_weights_must_sum_to_100() -> None:
    with pytest.raises(ValidationError, match="sum to 100"):
        FeeSettings(volume_weight=50)


def test_min_fee_above_max_rejected() -> None:
    with pytest.raises(ValidationError):
        FeeSettings(min_fee=20000, max_fee=10000)


def test_max_fee_must_fit_uint24() -> None:
    with pytest.raises(ValidationError):
        FeeSettings(max_fee=UINT24_MAX + 1)


def test_zero_scale_rejected() -> None:
    with pytest.raises(ValidationError):
        FeeSettings(liquidity_scale=0)


def test_fee_settings_are_frozen() -> None:
    fees = FeeSettings()
    with pytest.raises(ValidationError):
        fees.min_fee = 1


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FEE_VOLUME_SCALE", "1000")
    monkeypatch.setenv("FEE_MAX_FEE", "9000")

    fees = FeeSettings()

    assert fees.volume_scale == 1000
    assert fees.max_fee == 9000


def test_app_settings_compose_defaults() -> None:
    settings = AppSettings(log_level="DEBUG")

    assert settings.log_level == "DEBUG"
    assert settings.fees.min_fee == 500
    assert settings.pool.token0 != settings.pool.token1


def test_log_format_defaults_to_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_FORMAT", raising=False)

    assert AppSettings().log_format == "console"


def test_unknown_log_format_rejected() -> None:
    with pytest.raises(ValidationError):
        AppSettings(log_format="xml")
