"""RSI (Wilder smoothing) and its simple moving average, computed over a full candle window."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from rsi_scanner.models.market_models import Candle, OscillatorSeries, TimePoint
from rsi_scanner.services.market.series import compute_sma
from rsi_scanner.services.market.stochastic import STOCH_LOOKBACK, STOCH_SMOOTHING, compute_stoch_rsi


RSI_PERIOD = 14


def _rsi(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0.0:
        # avg_gain == 0 too means a flat market: no directional bias
        return 100.0 if avg_gain > 0.0 else 50.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def compute_rsi(candles: Sequence[Candle], period: int = RSI_PERIOD) -> List[TimePoint]:
    """
    Wilder RSI over close prices.

    Averages are seeded with the simple mean of the first `period` deltas, then smoothed with
    avg = (avg * (period - 1) + x) / period. The first point sits at candle index `period`,
    so the result is `period` points shorter than the input (empty when len <= period).
    """
    if period <= 1:
        raise ValueError("period must be > 1")
    if len(candles) <= period:
        return []

    closes = [c.close for c in candles]
    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [max(-d, 0.0) for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    out: List[TimePoint] = [TimePoint(candles[period].open_time, _rsi(avg_gain, avg_loss))]

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        out.append(TimePoint(candles[i + 1].open_time, _rsi(avg_gain, avg_loss)))

    return out


def compute_rsi_with_sma(
    candles: Sequence[Candle], period: int = RSI_PERIOD
) -> Tuple[List[TimePoint], List[TimePoint]]:
    rsi = compute_rsi(candles, period)
    return rsi, compute_sma(rsi, period)


def compute_oscillators(
    candles: Sequence[Candle],
    rsi_period: int = RSI_PERIOD,
    stoch_lookback: int = STOCH_LOOKBACK,
    stoch_smoothing: int = STOCH_SMOOTHING,
) -> OscillatorSeries:
    """Full oscillator set for one symbol: RSI, RSI SMA, Stoch-RSI %K / %D."""
    rsi, sma = compute_rsi_with_sma(candles, rsi_period)
    stoch_k, stoch_d = compute_stoch_rsi(rsi, stoch_lookback, stoch_smoothing)
    return OscillatorSeries(rsi=rsi, sma=sma, stoch_k=stoch_k, stoch_d=stoch_d)
