import math
import random

import pytest

from factories import candles_from_closes
from rsi_scanner.models.market_models import TimePoint
from rsi_scanner.services.market.indicators import (
    RSI_PERIOD,
    compute_oscillators,
    compute_rsi,
    compute_rsi_with_sma,
)
from rsi_scanner.services.market.series import compute_sma


P = RSI_PERIOD


def _random_walk(n, seed=7):
    rnd = random.Random(seed)
    price = 100.0
    out = []
    for _ in range(n):
        price = max(1.0, price + rnd.uniform(-2.0, 2.0))
        out.append(round(price, 4))
    return out


def test_rsi_is_empty_until_more_than_period_candles():
    assert compute_rsi(candles_from_closes(range(1, P + 1))) == []
    assert compute_rsi([]) == []
    rsi, sma = compute_rsi_with_sma(candles_from_closes([1.0] * P))
    assert rsi == [] and sma == []


def test_rsi_length_range_and_times():
    candles = candles_from_closes(_random_walk(120))
    rsi = compute_rsi(candles)
    assert len(rsi) == len(candles) - P
    assert all(0.0 <= p.value <= 100.0 for p in rsi)
    assert rsi[0].time == candles[P].open_time
    assert rsi[-1].time == candles[-1].open_time


def test_monotonic_increase_gives_100():
    rsi = compute_rsi(candles_from_closes([float(i) for i in range(1, 40)]))
    assert rsi and all(p.value == 100.0 for p in rsi)


def test_monotonic_decrease_gives_0():
    rsi = compute_rsi(candles_from_closes([float(i) for i in range(60, 20, -1)]))
    assert rsi and all(p.value == 0.0 for p in rsi)


def test_flat_market_gives_50():
    rsi = compute_rsi(candles_from_closes([42.0] * 30))
    assert rsi and all(p.value == 50.0 for p in rsi)


def test_up_then_down_scenario_single_point():
    closes = [10, 11, 12, 13, 14, 15, 14, 13, 12, 11, 10, 9, 8, 7, 6]
    rsi = compute_rsi(candles_from_closes(closes))
    assert len(rsi) == 1
    avg_gain = 5 / 14
    avg_loss = 9 / 14
    expected = 100 - 100 / (1 + avg_gain / avg_loss)
    assert rsi[0].value == pytest.approx(expected)
    assert rsi[0].value == pytest.approx(100 * 5 / 14)


def test_wilder_smoothing_after_seed():
    # 15 rises of 1 then one drop of 2: seed avg_gain=1, avg_loss=0 -> then smoothed once more
    closes = [float(i) for i in range(16)] + [13.0]
    rsi = compute_rsi(candles_from_closes(closes))
    assert len(rsi) == len(closes) - P
    avg_gain = (1.0 * 13 + 1.0) / 14   # 15th delta is +1
    avg_loss = 0.0
    assert rsi[1].value == 100.0
    avg_gain = (avg_gain * 13 + 0.0) / 14
    avg_loss = (avg_loss * 13 + 2.0) / 14
    assert rsi[2].value == pytest.approx(100 - 100 / (1 + avg_gain / avg_loss))


def test_sma_is_trailing_mean_of_rsi():
    candles = candles_from_closes(_random_walk(80, seed=3))
    rsi, sma = compute_rsi_with_sma(candles)
    assert len(sma) == len(rsi) - (P - 1)
    assert sma[0].time == rsi[P - 1].time
    assert sma[-1].value == pytest.approx(math.fsum(p.value for p in rsi[-P:]) / P)


def test_compute_sma_basics():
    pts = [TimePoint(i, float(v)) for i, v in enumerate([1, 2, 3, 4, 5])]
    assert [p.value for p in compute_sma(pts, 3)] == [2.0, 3.0, 4.0]
    assert compute_sma(pts, 6) == []
    with pytest.raises(ValueError):
        compute_sma(pts, 0)


def test_invalid_period_rejected():
    with pytest.raises(ValueError):
        compute_rsi(candles_from_closes([1, 2, 3]), period=1)


def test_oscillator_series_lengths():
    candles = candles_from_closes(_random_walk(200, seed=11))
    osc = compute_oscillators(candles)
    n = len(candles)
    assert len(osc.rsi) == n - 14
    assert len(osc.sma) == n - 14 - 13
    assert len(osc.stoch_k) == n - 14 - 13
    assert len(osc.stoch_d) == n - 14 - 13 - 2
    assert osc.last_rsi == osc.rsi[-1].value
    assert osc.last_stoch_k == osc.stoch_k[-1].value


def test_recompute_is_deterministic():
    candles = candles_from_closes(_random_walk(150, seed=5))
    assert compute_oscillators(candles) == compute_oscillators(candles)
