"""Adaptive retry engine for DEX token swaps."""

__version__ = "0.1.0"
