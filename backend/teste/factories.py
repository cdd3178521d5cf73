"""Kline / Candle builders shared by the tests."""

from __future__ import annotations

from typing import List, Optional, Sequence

from rsi_scanner.models.market_models import Candle

MINUTE_MS = 60_000
DAY_MS = 86_400_000
T0 = 1_700_000_000_000


def raw_kline(
    open_time: int,
    o: float,
    h: float,
    l: float,
    c: float,
    v: float = 10.0,
    taker_buy: Optional[float] = None,
    step_ms: int = MINUTE_MS,
) -> list:
    """Binance-style positional kline with string prices."""
    tb = v / 2 if taker_buy is None else taker_buy
    return [
        open_time,
        str(o),
        str(h),
        str(l),
        str(c),
        str(v),
        open_time + step_ms - 1,
        str(v * c),
        42,
        str(tb),
        str(tb * c),
        "0",
    ]


def raw_klines_from_closes(closes: Sequence[float], start: int = T0, step_ms: int = MINUTE_MS) -> List[list]:
    out = []
    prev = closes[0]
    for i, c in enumerate(closes):
        o = prev
        out.append(raw_kline(start + i * step_ms, o, max(o, c), min(o, c), c, step_ms=step_ms))
        prev = c
    return out


def candle(
    i: int,
    close: float,
    *,
    high: Optional[float] = None,
    low: Optional[float] = None,
    volume: float = 10.0,
    taker_buy: Optional[float] = None,
    start: int = T0,
    step_ms: int = MINUTE_MS,
) -> Candle:
    hi = close if high is None else high
    lo = close if low is None else low
    return Candle(
        open_time=start + i * step_ms,
        open=close,
        high=hi,
        low=lo,
        close=close,
        volume=volume,
        taker_buy_volume=volume / 2 if taker_buy is None else taker_buy,
        close_time=start + (i + 1) * step_ms - 1,
    )


def candles_from_closes(closes: Sequence[float], volume: float = 10.0) -> List[Candle]:
    return [candle(i, c, volume=volume) for i, c in enumerate(closes)]
