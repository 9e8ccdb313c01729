from decimal import Decimal
from pathlib import Path
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["auto", "json", "console"] = Field(
        default="auto",
        description="json, console, or auto (console at DEBUG, JSON otherwise)",
    )

    # Backoff
    retry_base_delay_ms: int = Field(default=2000, ge=0, description="Initial backoff delay in ms")
    retry_max_delay_ms: int = Field(default=30000, ge=0, description="Backoff cap in ms before jitter")
    retry_min_delay_ms: int = Field(default=1000, ge=0, description="Floor applied after jitter")
    retry_jitter_ratio: float = Field(
        default=0.125,
        ge=0.0,
        lt=1.0,
        description="Half-width of the multiplicative jitter (0.125 = +/-12.5%)",
    )

    # Strategy space
    amount_factors: List[Decimal] = Field(
        default_factory=lambda: [
            Decimal("1.0"),
            Decimal("0.5"),
            Decimal("0.3"),
            Decimal("0.1"),
            Decimal("0.05"),
        ],
        description="Amount scale factors, tried slowest",
    )
    fee_tiers: List[int] = Field(
        default_factory=lambda: [3000, 500, 10000, 100],
        description="Fee tiers in basis points",
    )
    slippage_tolerances: List[int] = Field(
        default_factory=lambda: [100, 200, 500, 1000, 2000],
        description="Slippage tolerances in basis points, tried fastest",
    )

    # Continuation policy
    no_pool_slippage_ceiling_bps: int = Field(
        default=500,
        ge=0,
        description="Stop a fee tier after NO_POOL once slippage exceeds this",
    )
    min_amount_floor: int = Field(
        default=10**15,
        ge=0,
        description="Stop a fee tier after INSUFFICIENT_BALANCE at or below this amount (0.001 of an 18-decimal token)",
    )

    # Reporting
    stats_report_interval: int = Field(
        default=5,
        ge=1,
        description="Batch runs log running statistics every N swaps",
    )
    report_dir: str = Field(default=".", description="Directory for JSON swap reports")

    @field_validator("amount_factors")
    @classmethod
    def _check_factors(cls, value: List[Decimal]) -> List[Decimal]:
        if not value:
            raise ValueError("amount_factors must not be empty")
        for factor in value:
            if not (Decimal("0") < factor <= Decimal("1")):
                raise ValueError(f"amount factor {factor} must be in (0, 1]")
        return value

    @field_validator("fee_tiers")
    @classmethod
    def _check_fee_tiers(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("fee_tiers must not be empty")
        if any(tier <= 0 for tier in value):
            raise ValueError("fee tiers must be positive")
        return value

    @field_validator("slippage_tolerances")
    @classmethod
    def _check_slippages(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("slippage_tolerances must not be empty")
        if any(bps <= 0 or bps >= 10000 for bps in value):
            raise ValueError("slippage tolerances must be in (0, 10000) basis points")
        return value


# Global settings instance
settings = Settings()
