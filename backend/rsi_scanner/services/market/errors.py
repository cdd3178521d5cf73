"""Errors raised while turning raw klines into indicators and profiles."""

from __future__ import annotations

from typing import Optional


class MarketDataError(Exception):
    """Base class for candle / profile data problems."""


class MalformedCandle(MarketDataError):
    """A raw candle breaks a bound or ordering rule."""

    def __init__(self, reason: str, index: Optional[int] = None) -> None:
        self.reason = reason
        self.index = index
        where = f" at index {index}" if index is not None else ""
        super().__init__(f"malformed candle{where}: {reason}")


class EmptyInput(MarketDataError):
    """No candles were supplied (usually 'no data yet')."""


class InsufficientData(MarketDataError):
    """Window too small or zero-range to build a volume profile."""
