"""Helpers shared by the oscillator calculators."""

from __future__ import annotations

import math
from typing import List, Sequence

from rsi_scanner.models.market_models import TimePoint


def compute_sma(points: Sequence[TimePoint], period: int) -> List[TimePoint]:
    """Trailing simple moving average; first point sits at index period-1."""
    if period < 1:
        raise ValueError("period must be >= 1")
    if len(points) < period:
        return []

    out: List[TimePoint] = []
    for i in range(period - 1, len(points)):
        window = points[i - period + 1 : i + 1]
        out.append(TimePoint(points[i].time, math.fsum(p.value for p in window) / period))
    return out
