"""Volume profile: traded volume by price level, POC and value area.

Each candle's whole volume goes to the bucket holding its close price (no spreading across
the candle's high-low range). Buy volume is the exchange's taker-buy base volume, sell
volume is the remainder.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from rsi_scanner.models.market_models import Candle, VolumeBucket, VolumeProfile
from rsi_scanner.services.market.errors import InsufficientData


DEFAULT_RESOLUTION = 100
VALUE_AREA_PCT = 0.70


def _bucket_index(price: float, price_min: float, width: float, resolution: int) -> int:
    idx = int((price - price_min) / width)
    # price == price_max lands on the upper edge of the last bucket
    return min(max(idx, 0), resolution - 1)


def find_poc_index(volumes: Sequence[float]) -> int:
    """Index of the max-volume bucket; ties go to the lowest price."""
    best = 0
    for i in range(1, len(volumes)):
        if volumes[i] > volumes[best]:
            best = i
    return best


def value_area_range(volumes: Sequence[float], poc_index: int, pct: float = VALUE_AREA_PCT) -> Tuple[int, int]:
    """
    Grow [lo, hi] out of the POC bucket, one neighbour at a time, always taking the side with
    more volume (ties extend downward), until the range holds `pct` of total volume.
    """
    total = sum(volumes)
    target = total * pct
    lo = hi = poc_index
    acc = volumes[poc_index]
    last = len(volumes) - 1

    while acc < target:
        can_down = lo > 0
        can_up = hi < last
        if not (can_down or can_up):
            break
        if can_down and can_up:
            if volumes[hi + 1] > volumes[lo - 1]:
                hi += 1
                acc += volumes[hi]
            else:
                lo -= 1
                acc += volumes[lo]
        elif can_down:
            lo -= 1
            acc += volumes[lo]
        else:
            hi += 1
            acc += volumes[hi]

    return lo, hi


def build_volume_profile(
    candles: Sequence[Candle],
    resolution: int = DEFAULT_RESOLUTION,
    value_area_pct: float = VALUE_AREA_PCT,
) -> VolumeProfile:
    """
    Bucket `candles` into `resolution` equal-width price levels.

    Raises InsufficientData for fewer than 2 candles or a zero price range.
    """
    if resolution < 2:
        raise ValueError("resolution must be >= 2")
    if not (0.0 < value_area_pct <= 1.0):
        raise ValueError("value_area_pct must be in (0, 1]")
    if len(candles) < 2:
        raise InsufficientData(f"need at least 2 candles, got {len(candles)}")

    price_min = min(c.low for c in candles)
    price_max = max(c.high for c in candles)
    if price_max == price_min:
        raise InsufficientData(f"zero price range at {price_min}")

    width = (price_max - price_min) / resolution
    volumes: List[float] = [0.0] * resolution
    buys: List[float] = [0.0] * resolution
    sells: List[float] = [0.0] * resolution

    for c in candles:
        idx = _bucket_index(c.close, price_min, width, resolution)
        volumes[idx] += c.volume
        buys[idx] += c.taker_buy_volume
        sells[idx] += c.volume - c.taker_buy_volume

    levels = [price_min + (i + 0.5) * width for i in range(resolution)]
    buckets = [
        VolumeBucket(price_level=levels[i], volume=volumes[i], buy_volume=buys[i], sell_volume=sells[i])
        for i in range(resolution)
    ]

    poc_idx = find_poc_index(volumes)
    lo, hi = value_area_range(volumes, poc_idx, value_area_pct)

    return VolumeProfile(
        buckets=buckets,
        poc=levels[poc_idx],
        vah=levels[hi],
        val=levels[lo],
        max_bucket_volume=volumes[poc_idx],
        price_min=price_min,
        price_max=price_max,
    )
