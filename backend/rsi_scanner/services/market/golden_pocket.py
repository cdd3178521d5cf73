"""Golden pocket (0.618 - 0.65 Fibonacci retracement) of the visible candle window."""

from __future__ import annotations

from typing import Optional, Sequence

from rsi_scanner.models.market_models import Candle, GoldenPocket


FIB_UPPER = 0.618
FIB_LOWER = 0.65


def compute_golden_pocket(candles: Sequence[Candle]) -> Optional[GoldenPocket]:
    """
    Retracement zone measured from the window's extreme in the direction of the move:
    uptrend (last close > first close) measures down from the highest high,
    otherwise up from the lowest low. None with fewer than 2 candles or a zero range.
    """
    if not candles or len(candles) < 2:
        return None

    highest = max(c.high for c in candles)
    lowest = min(c.low for c in candles)
    rng = highest - lowest
    if rng == 0:
        return None

    uptrend = candles[-1].close > candles[0].close
    if uptrend:
        top = highest - rng * FIB_UPPER
        bottom = highest - rng * FIB_LOWER
    else:
        top = lowest + rng * FIB_LOWER
        bottom = lowest + rng * FIB_UPPER

    return GoldenPocket(top=top, bottom=bottom, uptrend=uptrend)
