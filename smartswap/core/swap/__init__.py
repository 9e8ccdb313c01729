"""
Swap Models

Parameters, outcomes and helpers shared by the retry engine and the
swap operations it drives. The batch runner lives in
``smartswap.core.swap.batch`` and is imported from there.
"""

from .constants import (
    DEFAULT_AMOUNT_FACTORS,
    DEFAULT_FEE_TIERS,
    DEFAULT_SLIPPAGE_TOLERANCES,
    FEE_TIER_DESCRIPTIONS,
)
from .models import (
    AttemptParameters,
    StrategyKey,
    SwapError,
    SwapFailure,
    SwapOperation,
    SwapOutcome,
    SwapSuccess,
)
from .pricing import calculate_min_amount_out, format_fee_tier, format_slippage

__all__ = [
    # Constants
    "DEFAULT_AMOUNT_FACTORS",
    "DEFAULT_FEE_TIERS",
    "DEFAULT_SLIPPAGE_TOLERANCES",
    "FEE_TIER_DESCRIPTIONS",
    # Models
    "AttemptParameters",
    "StrategyKey",
    "SwapError",
    "SwapFailure",
    "SwapOperation",
    "SwapOutcome",
    "SwapSuccess",
    # Pricing
    "calculate_min_amount_out",
    "format_fee_tier",
    "format_slippage",
]
