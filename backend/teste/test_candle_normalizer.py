from decimal import Decimal

import pytest

from factories import MINUTE_MS, T0, raw_kline, raw_klines_from_closes
from rsi_scanner.services.market.candle_normalizer import normalize_candles, parse_candle
from rsi_scanner.services.market.errors import EmptyInput, MalformedCandle


def test_parses_binance_array_with_string_fields():
    c = parse_candle(raw_kline(T0, 100.5, 101.25, 99.75, 100.0, v=12.5, taker_buy=5.0))
    assert c.open_time == T0
    assert c.close_time == T0 + MINUTE_MS - 1
    assert (c.open, c.high, c.low, c.close) == (100.5, 101.25, 99.75, 100.0)
    assert c.volume == 12.5
    assert c.taker_buy_volume == 5.0
    assert c.sell_volume == 7.5
    assert c.trade_count == 42


def test_parses_camel_case_mapping_and_decimals():
    raw = {
        "openTime": T0,
        "open": Decimal("1.10"),
        "high": "1.20",
        "low": 1.0,
        "close": "1.15",
        "volume": "300",
        "closeTime": T0 + 999,
        "takerBuyBaseAssetVolume": "120",
    }
    c = parse_candle(raw)
    assert c.open == pytest.approx(1.10)
    assert c.taker_buy_volume == 120.0
    assert c.quote_volume == 0.0
    assert c.trade_count == 0


def test_normalize_keeps_order():
    candles = normalize_candles(raw_klines_from_closes([1, 2, 3, 4]))
    assert [c.close for c in candles] == [1.0, 2.0, 3.0, 4.0]
    assert all(a.open_time < b.open_time for a, b in zip(candles, candles[1:]))


def test_empty_input_is_allowed_unless_required():
    assert normalize_candles([]) == []
    with pytest.raises(EmptyInput):
        normalize_candles([], require_non_empty=True)


@pytest.mark.parametrize(
    "kline",
    [
        raw_kline(T0, 10, 9, 11, 10),             # low above high
        raw_kline(T0, 12, 11, 9, 10),             # open above high
        raw_kline(T0, 10, 11, 9, 8),              # close below low
        raw_kline(T0, 10, 11, 9, 10, v=5, taker_buy=6),
        raw_kline(T0, 10, 11, 9, 10, v=5, taker_buy=-1),
        raw_kline(T0, 10, 11, 9, 10, step_ms=0),  # closeTime before openTime
    ],
)
def test_bound_violations_are_malformed(kline):
    with pytest.raises(MalformedCandle):
        normalize_candles([kline])


def test_non_numeric_and_short_records_are_malformed():
    bad = raw_kline(T0, 10, 11, 9, 10)
    bad[4] = "abc"
    with pytest.raises(MalformedCandle):
        parse_candle(bad)
    with pytest.raises(MalformedCandle):
        parse_candle([T0, "1", "2"])
    with pytest.raises(MalformedCandle):
        parse_candle("not a kline")


def test_non_finite_value_is_malformed():
    bad = raw_kline(T0, 10, 11, 9, 10)
    bad[5] = "NaN"
    with pytest.raises(MalformedCandle):
        parse_candle(bad)


def test_non_monotonic_open_times_report_index():
    klines = raw_klines_from_closes([1, 2, 3])
    klines[2][0] = klines[1][0]
    with pytest.raises(MalformedCandle) as exc:
        normalize_candles(klines)
    assert exc.value.index == 2


def test_already_parsed_candles_pass_through():
    candles = normalize_candles(raw_klines_from_closes([5, 6, 7]))
    assert normalize_candles(candles) == candles


def test_backwards_close_time_is_malformed():
    first = raw_kline(T0, 1, 1, 1, 1, step_ms=10_001)          # closes at T0 + 10000
    second = raw_kline(T0 + 1000, 1, 1, 1, 1, step_ms=1_001)   # closes at T0 + 2000
    with pytest.raises(MalformedCandle) as exc:
        normalize_candles([first, second])
    assert exc.value.index == 1
    assert "closeTime" in str(exc.value)


def test_overlapping_candles_are_malformed():
    first = raw_kline(T0, 1, 1, 1, 1, step_ms=2 * MINUTE_MS)
    second = raw_kline(T0 + MINUTE_MS, 1, 1, 1, 1, step_ms=2 * MINUTE_MS)
    with pytest.raises(MalformedCandle) as exc:
        normalize_candles([first, second])
    assert exc.value.index == 1
    assert "overlaps" in str(exc.value)
