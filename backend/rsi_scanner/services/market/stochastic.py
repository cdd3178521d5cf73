"""Stochastic RSI: where RSI sits inside its own recent range."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from rsi_scanner.models.market_models import TimePoint
from rsi_scanner.services.market.series import compute_sma


STOCH_LOOKBACK = 14
STOCH_SMOOTHING = 3


def compute_stoch_k(rsi: Sequence[TimePoint], lookback: int = STOCH_LOOKBACK) -> List[TimePoint]:
    if lookback < 1:
        raise ValueError("lookback must be >= 1")
    if len(rsi) < lookback:
        return []

    out: List[TimePoint] = []
    for i in range(lookback - 1, len(rsi)):
        window = [p.value for p in rsi[i - lookback + 1 : i + 1]]
        lowest = min(window)
        highest = max(window)
        if highest == lowest:
            k = 50.0
        else:
            k = 100.0 * (rsi[i].value - lowest) / (highest - lowest)
        out.append(TimePoint(rsi[i].time, k))
    return out


def compute_stoch_rsi(
    rsi: Sequence[TimePoint],
    lookback: int = STOCH_LOOKBACK,
    smoothing: int = STOCH_SMOOTHING,
) -> Tuple[List[TimePoint], List[TimePoint]]:
    """
    Returns (%K, %D).

    %K is lookback-1 points shorter than rsi; %D (SMA of %K over `smoothing`) is a further
    smoothing-1 points shorter.
    """
    k = compute_stoch_k(rsi, lookback)
    d = compute_sma(k, smoothing)
    return k, d
