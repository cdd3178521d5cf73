"""Candle source backed by a JSON dump of exchange klines (offline scans / demos).

File layout:
  {
    "BTCUSDT": {
      "klines":  [[openTime, "open", "high", "low", "close", "volume", closeTime, ...], ...],
      "weekly":  [...],   # optional, previous-week window
      "monthly": [...],   # optional, previous-month window
      "daily":   [...]    # optional, weekly/monthly are cut from it when not given
    },
    ...
  }
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rsi_scanner.app.engine import SymbolInput
from rsi_scanner.infrastructure.logging.logging import get_logger
from rsi_scanner.infrastructure.utils.timeutils import previous_month_bounds, previous_week_bounds
from rsi_scanner.services.market.candle_normalizer import normalize_candles
from rsi_scanner.services.market.errors import MalformedCandle
from rsi_scanner.services.market.higher_tf_levels import select_window

log = get_logger("file_source")


def _htf_windows(entry: Dict[str, Any], symbol: str, now: Optional[datetime]) -> tuple[Sequence[Any], Sequence[Any]]:
    weekly = entry.get("weekly")
    monthly = entry.get("monthly")
    daily_raw = entry.get("daily")
    if daily_raw and (weekly is None or monthly is None):
        try:
            daily = normalize_candles(daily_raw)
        except MalformedCandle as e:
            log.warning("daily_klines_malformed", symbol=symbol, error=str(e))
            daily = []
        if weekly is None:
            weekly = select_window(daily, *previous_week_bounds(now))
        if monthly is None:
            monthly = select_window(daily, *previous_month_bounds(now))
    return weekly or [], monthly or []


class FileCandleSource:
    """Async candle source reading the whole dump on every call."""

    def __init__(self, path: Path, now: Optional[datetime] = None) -> None:
        self.path = Path(path)
        self.now = now

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            raise FileNotFoundError(f"Kline file not found: {self.path}")
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Kline file root must be an object keyed by symbol")
        return {str(k).upper(): v for k, v in data.items()}

    async def __call__(self, symbols: List[str], timeframe: str, limit: Optional[int] = None) -> List[SymbolInput]:
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, self.load)
        # A dump unrelated to the configured list is scanned as-is; otherwise configured
        # symbols absent from the dump come through empty and report "no_data"
        if any(s in data for s in symbols):
            wanted = list(symbols)
        else:
            wanted = list(data.keys())

        inputs: List[SymbolInput] = []
        for symbol in wanted:
            entry = data.get(symbol) or {}
            if isinstance(entry, list):
                entry = {"klines": entry}
            elif not isinstance(entry, dict):
                log.warning("symbol_entry_unsupported", symbol=symbol, type=type(entry).__name__)
                entry = {}
            klines = entry.get("klines") or []
            if limit and isinstance(klines, list):
                klines = klines[-limit:]
            weekly, monthly = _htf_windows(entry, symbol, self.now)
            inputs.append(
                SymbolInput(
                    symbol=symbol,
                    timeframe=timeframe,
                    klines=klines,
                    weekly=weekly,
                    monthly=monthly,
                )
            )
        log.info("klines_loaded", path=str(self.path), symbols=len(inputs))
        return inputs
