"""Market domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


TIMEFRAMES: List[str] = ["1m", "3m", "5m", "15m", "30m", "1h", "2h", "4h", "8h", "1d", "3d", "1w"]


@dataclass(frozen=True)
class Candle:
    open_time: int          # epoch ms
    open: float
    high: float
    low: float
    close: float
    volume: float
    taker_buy_volume: float
    close_time: int         # epoch ms
    trade_count: int = 0
    quote_volume: float = 0.0

    @property
    def sell_volume(self) -> float:
        return self.volume - self.taker_buy_volume


@dataclass(frozen=True)
class TimePoint:
    time: int
    value: float


@dataclass(frozen=True)
class OscillatorSeries:
    rsi: List[TimePoint] = field(default_factory=list)
    sma: List[TimePoint] = field(default_factory=list)
    stoch_k: List[TimePoint] = field(default_factory=list)
    stoch_d: List[TimePoint] = field(default_factory=list)

    @property
    def last_rsi(self) -> Optional[float]:
        return self.rsi[-1].value if self.rsi else None

    @property
    def last_stoch_k(self) -> Optional[float]:
        return self.stoch_k[-1].value if self.stoch_k else None


@dataclass(frozen=True)
class VolumeBucket:
    price_level: float
    volume: float
    buy_volume: float
    sell_volume: float


@dataclass(frozen=True)
class VolumeProfile:
    buckets: List[VolumeBucket]
    poc: float
    vah: float
    val: float
    max_bucket_volume: float
    price_min: float
    price_max: float

    @property
    def total_volume(self) -> float:
        return sum(b.volume for b in self.buckets)


@dataclass(frozen=True)
class VolumeProfileSummary:
    poc: Optional[float] = None
    vah: Optional[float] = None
    val: Optional[float] = None

    @classmethod
    def from_profile(cls, profile: VolumeProfile) -> "VolumeProfileSummary":
        return cls(poc=profile.poc, vah=profile.vah, val=profile.val)

    @property
    def is_empty(self) -> bool:
        return self.poc is None and self.vah is None and self.val is None


@dataclass(frozen=True)
class HTFLevels:
    weekly: VolumeProfileSummary = field(default_factory=VolumeProfileSummary)
    monthly: VolumeProfileSummary = field(default_factory=VolumeProfileSummary)


@dataclass(frozen=True)
class GoldenPocket:
    top: float
    bottom: float
    uptrend: bool
