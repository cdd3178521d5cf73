"""Parse raw exchange klines into validated Candle sequences.

Two wire shapes are accepted:
- Binance positional arrays:
  [openTime, open, high, low, close, volume, closeTime, quoteVolume, trades,
   takerBuyBase, takerBuyQuote, ignore]
- Mappings with the same fields in camelCase (openTime, open, ..., takerBuyBaseAssetVolume).

Prices and volumes arrive as strings (or Decimal / numbers) and are parsed to floats.
Candle instances are accepted too and go through the same checks.
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Sequence

from rsi_scanner.models.market_models import Candle
from rsi_scanner.services.market.errors import EmptyInput, MalformedCandle


_FIELDS = (
    "openTime",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "closeTime",
    "quoteAssetVolume",
    "numberOfTrades",
    "takerBuyBaseAssetVolume",
)


def _to_float(value: Any, name: str, index: int) -> float:
    if isinstance(value, bool) or value is None:
        raise MalformedCandle(f"{name} is missing or not numeric", index)
    try:
        out = float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        raise MalformedCandle(f"{name}={value!r} is not numeric", index)
    if not math.isfinite(out):
        raise MalformedCandle(f"{name}={value!r} is not finite", index)
    return out


def _to_int(value: Any, name: str, index: int) -> int:
    num = _to_float(value, name, index)
    if num != int(num):
        raise MalformedCandle(f"{name}={value!r} is not an integer", index)
    return int(num)


def _fields(raw: Any, index: int) -> List[Any]:
    if isinstance(raw, Candle):
        # Already parsed (e.g. a window sliced from a longer series): re-check bounds only
        return [
            raw.open_time, raw.open, raw.high, raw.low, raw.close, raw.volume,
            raw.close_time, raw.quote_volume, raw.trade_count, raw.taker_buy_volume,
        ]
    if isinstance(raw, Mapping):
        missing = [k for k in _FIELDS if k not in raw and k not in ("quoteAssetVolume", "numberOfTrades")]
        if missing:
            raise MalformedCandle(f"missing fields {missing}", index)
        return [raw.get(k, 0) for k in _FIELDS]
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) < len(_FIELDS):
            raise MalformedCandle(f"expected at least {len(_FIELDS)} fields, got {len(raw)}", index)
        return list(raw[: len(_FIELDS)])
    raise MalformedCandle(f"unsupported record type {type(raw).__name__}", index)


def parse_candle(raw: Any, index: int = 0) -> Candle:
    """Parse and bound-check a single raw kline."""
    f = _fields(raw, index)

    candle = Candle(
        open_time=_to_int(f[0], "openTime", index),
        open=_to_float(f[1], "open", index),
        high=_to_float(f[2], "high", index),
        low=_to_float(f[3], "low", index),
        close=_to_float(f[4], "close", index),
        volume=_to_float(f[5], "volume", index),
        close_time=_to_int(f[6], "closeTime", index),
        quote_volume=_to_float(f[7], "quoteAssetVolume", index),
        trade_count=_to_int(f[8], "numberOfTrades", index),
        taker_buy_volume=_to_float(f[9], "takerBuyBaseAssetVolume", index),
    )

    if candle.low > candle.high:
        raise MalformedCandle(f"low {candle.low} above high {candle.high}", index)
    if not (candle.low <= candle.open <= candle.high):
        raise MalformedCandle(f"open {candle.open} outside [{candle.low}, {candle.high}]", index)
    if not (candle.low <= candle.close <= candle.high):
        raise MalformedCandle(f"close {candle.close} outside [{candle.low}, {candle.high}]", index)
    if candle.volume < 0:
        raise MalformedCandle(f"negative volume {candle.volume}", index)
    if not (0 <= candle.taker_buy_volume <= candle.volume):
        raise MalformedCandle(
            f"taker buy volume {candle.taker_buy_volume} outside [0, {candle.volume}]", index
        )
    if candle.open_time >= candle.close_time:
        raise MalformedCandle(f"openTime {candle.open_time} not before closeTime {candle.close_time}", index)
    return candle


def normalize_candles(raw: Sequence[Any], require_non_empty: bool = False) -> List[Candle]:
    """
    Convert raw klines into an ordered list of Candles.

    Raises EmptyInput for an empty sequence when require_non_empty is set,
    MalformedCandle for bound violations, non-increasing open or close times,
    or a candle opening before the previous one closed.
    """
    if not raw:
        if require_non_empty:
            raise EmptyInput("no candles supplied")
        return []

    candles: List[Candle] = []
    for i, item in enumerate(raw):
        c = parse_candle(item, i)
        if candles:
            prev = candles[-1]
            if c.open_time <= prev.open_time:
                raise MalformedCandle(f"openTime {c.open_time} not after previous {prev.open_time}", i)
            if c.close_time <= prev.close_time:
                raise MalformedCandle(f"closeTime {c.close_time} not after previous {prev.close_time}", i)
            if c.open_time <= prev.close_time:
                raise MalformedCandle(f"openTime {c.open_time} overlaps previous closeTime {prev.close_time}", i)
        candles.append(c)
    return candles
