"""Hyperliquid fills: builder fill data, builder attribution, taint detection, leaderboards and an HTTP app."""

__version__ = "0.1.0"

__all__ = ["__version__"]