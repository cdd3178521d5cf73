"""Previous-week / previous-month volume profile levels (reference lines for the chart)."""

from __future__ import annotations

from typing import List, Sequence

from rsi_scanner.models.market_models import Candle, HTFLevels, VolumeProfileSummary
from rsi_scanner.services.market.errors import InsufficientData
from rsi_scanner.services.market.volume_profile import VALUE_AREA_PCT, build_volume_profile


HTF_RESOLUTION = 30


def select_window(candles: Sequence[Candle], start_ms: int, end_ms: int) -> List[Candle]:
    """Candles whose open time falls in [start_ms, end_ms)."""
    return [c for c in candles if start_ms <= c.open_time < end_ms]


class HigherTimeframeLevels:
    """
    Runs the volume profile over the previous week and previous month windows at a coarse
    resolution and keeps only POC / VAH / VAL.
    Missing or too-small windows (newly listed symbols) give an all-None summary.
    """

    def __init__(self, resolution: int = HTF_RESOLUTION, value_area_pct: float = VALUE_AREA_PCT) -> None:
        if resolution < 2:
            raise ValueError("resolution must be >= 2")
        self.resolution = int(resolution)
        self.value_area_pct = float(value_area_pct)

    def summarize(self, window: Sequence[Candle]) -> VolumeProfileSummary:
        try:
            profile = build_volume_profile(window, self.resolution, self.value_area_pct)
        except InsufficientData:
            return VolumeProfileSummary()
        return VolumeProfileSummary.from_profile(profile)

    def aggregate(self, weekly_window: Sequence[Candle], monthly_window: Sequence[Candle]) -> HTFLevels:
        return HTFLevels(
            weekly=self.summarize(weekly_window),
            monthly=self.summarize(monthly_window),
        )


def aggregate_htf_levels(
    weekly_window: Sequence[Candle],
    monthly_window: Sequence[Candle],
    resolution: int = HTF_RESOLUTION,
) -> HTFLevels:
    return HigherTimeframeLevels(resolution).aggregate(weekly_window, monthly_window)
