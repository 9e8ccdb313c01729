"""Defaults and fee-tier metadata for swap retry orchestration."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Tuple

BPS_DENOMINATOR = 10_000

# Amount scale factors, tried slowest (outer loop).
DEFAULT_AMOUNT_FACTORS: Tuple[Decimal, ...] = (
    Decimal('1.0'),
    Decimal('0.5'),
    Decimal('0.3'),
    Decimal('0.1'),
    Decimal('0.05'),
)

# Fee tiers in basis points (middle loop).
DEFAULT_FEE_TIERS: Tuple[int, ...] = (
    3000,   # 0.3% - most common
    500,    # 0.05% - stable pairs
    10000,  # 1% - exotic pairs
    100,    # 0.01% - very stable pairs
)

# Slippage tolerances in basis points, tried fastest (inner loop).
DEFAULT_SLIPPAGE_TOLERANCES: Tuple[int, ...] = (
    100,   # 1%
    200,   # 2%
    500,   # 5%
    1000,  # 10%
    2000,  # 20% - last resort
)

DEFAULT_INITIAL_SLIPPAGE_BPS = DEFAULT_SLIPPAGE_TOLERANCES[0]

# NO_POOL: raising slippage past this cannot create a pool.
DEFAULT_NO_POOL_SLIPPAGE_CEILING_BPS = 500

# INSUFFICIENT_BALANCE: 0.001 of an 18-decimal token.
DEFAULT_MIN_AMOUNT_FLOOR = 10**15

DEFAULT_BASE_DELAY_MS = 2000
DEFAULT_MAX_DELAY_MS = 30000
DEFAULT_MIN_DELAY_MS = 1000
DEFAULT_JITTER_RATIO = 0.125

FEE_TIER_DESCRIPTIONS: Dict[int, str] = {
    100: 'typically for stable pairs like USDC-USDT',
    500: 'for stable-like pairs',
    3000: 'most common for standard pairs',
    10000: 'for exotic pairs',
}

__all__ = [
    'BPS_DENOMINATOR',
    'DEFAULT_AMOUNT_FACTORS',
    'DEFAULT_FEE_TIERS',
    'DEFAULT_SLIPPAGE_TOLERANCES',
    'DEFAULT_INITIAL_SLIPPAGE_BPS',
    'DEFAULT_NO_POOL_SLIPPAGE_CEILING_BPS',
    'DEFAULT_MIN_AMOUNT_FLOOR',
    'DEFAULT_BASE_DELAY_MS',
    'DEFAULT_MAX_DELAY_MS',
    'DEFAULT_MIN_DELAY_MS',
    'DEFAULT_JITTER_RATIO',
    'FEE_TIER_DESCRIPTIONS',
]
