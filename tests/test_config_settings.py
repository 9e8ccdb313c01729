from decimal import Decimal

import pytest
from pydantic import ValidationError

from smartswap.config import Settings
from smartswap.core.recovery import RecoveryConfig


def test_defaults():
    """Defaults mirror the engine's built-in strategy lists."""

    settings = Settings(_env_file=None)

    assert settings.fee_tiers == [3000, 500, 10000, 100]
    assert settings.slippage_tolerances == [100, 200, 500, 1000, 2000]
    assert settings.amount_factors[0] == Decimal("1")
    assert settings.retry_jitter_ratio == 0.125


def test_env_overrides(monkeypatch):
    """Lists and delays can be overridden from the environment."""

    monkeypatch.setenv("FEE_TIERS", "[500, 3000]")
    monkeypatch.setenv("RETRY_BASE_DELAY_MS", "500")

    settings = Settings(_env_file=None)

    assert settings.fee_tiers == [500, 3000]
    assert settings.retry_base_delay_ms == 500


@pytest.mark.parametrize("kwargs", [
    {"fee_tiers": []},
    {"amount_factors": [Decimal("2")]},
    {"slippage_tolerances": [10000]},
    {"retry_jitter_ratio": 1.5},
    {"stats_report_interval": 0},
    {"log_format": "xml"},
])
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **kwargs)


def test_recovery_config_from_settings():
    """Settings convert into the engine's plain config."""

    settings = Settings(
        _env_file=None,
        fee_tiers=[500],
        slippage_tolerances=[100, 300],
        amount_factors=[Decimal("1"), Decimal("0.5")],
        retry_max_delay_ms=8000,
        no_pool_slippage_ceiling_bps=300,
    )

    config = RecoveryConfig.from_settings(settings)

    assert len(config.strategy_space) == 4
    assert config.strategy_space.fee_tiers == (500,)
    assert config.retry.max_delay_ms == 8000
    assert config.policy.no_pool_slippage_ceiling_bps == 300
