import pytest

from factories import candle
from rsi_scanner.services.market.golden_pocket import compute_golden_pocket


def test_uptrend_measures_down_from_the_high():
    # swing 100 -> 200, range 100
    candles = [candle(0, 100.0, low=100.0), candle(1, 150.0), candle(2, 190.0, high=200.0)]
    gp = compute_golden_pocket(candles)
    assert gp.uptrend is True
    assert gp.top == pytest.approx(138.2)
    assert gp.bottom == pytest.approx(135.0)
    assert gp.top > gp.bottom


def test_downtrend_measures_up_from_the_low():
    candles = [candle(0, 190.0, high=200.0), candle(1, 150.0), candle(2, 110.0, low=100.0)]
    gp = compute_golden_pocket(candles)
    assert gp.uptrend is False
    assert gp.top == pytest.approx(165.0)
    assert gp.bottom == pytest.approx(161.8)
    assert gp.top > gp.bottom


def test_flat_or_short_window_has_no_pocket():
    assert compute_golden_pocket([candle(0, 5.0)]) is None
    assert compute_golden_pocket([candle(0, 5.0), candle(1, 5.0)]) is None
