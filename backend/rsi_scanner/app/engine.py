"""Refresh cycle: klines -> oscillators / volume profiles / HTF levels -> alerts, per symbol."""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from rsi_scanner.infrastructure.logging.logging import bind_cycle, configure_logging, get_logger
from rsi_scanner.infrastructure.utils.config import ScannerConfig, load_config
from rsi_scanner.infrastructure.utils.timeutils import utc_now
from rsi_scanner.models.alert_models import AlertEvent
from rsi_scanner.models.market_models import (
    Candle,
    GoldenPocket,
    HTFLevels,
    OscillatorSeries,
    VolumeProfile,
)
from rsi_scanner.services.alerts.edge_detector import RsiObservation, ThresholdEdgeDetector
from rsi_scanner.services.alerts.notification_log import NotificationLog
from rsi_scanner.services.market.candle_normalizer import normalize_candles
from rsi_scanner.services.market.errors import EmptyInput, InsufficientData, MalformedCandle
from rsi_scanner.services.market.golden_pocket import compute_golden_pocket
from rsi_scanner.services.market.higher_tf_levels import HigherTimeframeLevels
from rsi_scanner.services.market.indicators import compute_oscillators
from rsi_scanner.services.market.volume_profile import build_volume_profile
from rsi_scanner.services.monitoring.metrics import RefreshMetrics

log = get_logger("engine")


@dataclass(frozen=True)
class SymbolInput:
    """Raw klines handed over by the candle source for one symbol."""
    symbol: str
    timeframe: str
    klines: Sequence[Any]
    weekly: Sequence[Any] = ()
    monthly: Sequence[Any] = ()


@dataclass(frozen=True)
class SymbolSnapshot:
    symbol: str
    timeframe: str
    price: float            # last close
    volume: float           # last candle volume
    change_pct: float       # first -> last close over the window
    oscillators: OscillatorSeries
    profile: Optional[VolumeProfile]
    htf_levels: HTFLevels
    golden_pocket: Optional[GoldenPocket]
    candles: List[Candle]


@dataclass(frozen=True)
class SymbolOutcome:
    symbol: str
    timeframe: str
    status: str             # "ok" | "no_data" | "error"
    snapshot: Optional[SymbolSnapshot] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class RefreshResult:
    timeframe: str
    outcomes: Dict[str, SymbolOutcome]
    events: List[AlertEvent] = field(default_factory=list)
    started_at_iso: str = ""
    duration_ms: float = 0.0

    @property
    def snapshots(self) -> Dict[str, SymbolSnapshot]:
        return {s: o.snapshot for s, o in self.outcomes.items() if o.snapshot is not None}

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes.values() if o.status == status)


# (symbols, timeframe, kline_limit) -> inputs for one cycle
CandleSource = Callable[[List[str], str, int], Awaitable[Sequence[SymbolInput]]]


def _normalize_htf(raw: Sequence[Any], symbol: str, window: str) -> List[Candle]:
    # a malformed HTF window is dropped on its own
    try:
        return normalize_candles(raw)
    except MalformedCandle as e:
        log.warning("htf_window_malformed", symbol=symbol, window=window, error=str(e))
        return []


def compute_symbol_snapshot(inp: SymbolInput, config: ScannerConfig) -> SymbolSnapshot:
    """
    Full pipeline for one symbol. Raises EmptyInput (no klines) or MalformedCandle;
    a window too small for a volume profile just leaves the profile out.
    """
    candles = normalize_candles(inp.klines, require_non_empty=True)

    ind_cfg = config.indicators
    oscillators = compute_oscillators(
        candles,
        rsi_period=ind_cfg.rsi_period,
        stoch_lookback=ind_cfg.stoch_lookback,
        stoch_smoothing=ind_cfg.stoch_smoothing,
    )

    vp_cfg = config.volume_profile
    try:
        profile: Optional[VolumeProfile] = build_volume_profile(
            candles, vp_cfg.resolution, vp_cfg.value_area_pct
        )
    except InsufficientData:
        profile = None

    htf = HigherTimeframeLevels(vp_cfg.htf_resolution, vp_cfg.value_area_pct)
    htf_levels = htf.aggregate(
        _normalize_htf(inp.weekly, inp.symbol, "weekly"),
        _normalize_htf(inp.monthly, inp.symbol, "monthly"),
    )

    first, last = candles[0], candles[-1]
    change_pct = ((last.close - first.close) / first.close * 100.0) if first.close else 0.0

    return SymbolSnapshot(
        symbol=inp.symbol,
        timeframe=inp.timeframe,
        price=last.close,
        volume=last.volume,
        change_pct=change_pct,
        oscillators=oscillators,
        profile=profile,
        htf_levels=htf_levels,
        golden_pocket=compute_golden_pocket(candles),
        candles=candles,
    )


def _compute_outcome(inp: SymbolInput, config: ScannerConfig) -> SymbolOutcome:
    try:
        snap = compute_symbol_snapshot(inp, config)
    except EmptyInput:
        log.info("symbol_no_data", symbol=inp.symbol, timeframe=inp.timeframe)
        return SymbolOutcome(inp.symbol, inp.timeframe, "no_data")
    except MalformedCandle as e:
        log.warning("symbol_malformed", symbol=inp.symbol, timeframe=inp.timeframe, error=str(e))
        return SymbolOutcome(inp.symbol, inp.timeframe, "error", error=str(e))
    except Exception as e:
        # One broken symbol must not abort the rest of the cycle
        log.exception("symbol_failed", symbol=inp.symbol, timeframe=inp.timeframe)
        return SymbolOutcome(inp.symbol, inp.timeframe, "error", error=f"{type(e).__name__}: {e}")
    return SymbolOutcome(inp.symbol, inp.timeframe, "ok", snapshot=snap)


def alerts_allowed(config: ScannerConfig, timeframe: str) -> bool:
    return config.alerts.enabled and timeframe in config.alerts.timeframes


def run_refresh_cycle(
    inputs: Sequence[SymbolInput],
    detector: ThresholdEdgeDetector,
    config: ScannerConfig,
    sink: Optional[NotificationLog] = None,
    timeframe: Optional[str] = None,
) -> RefreshResult:
    """Compute every symbol in isolation, then evaluate alerts over the whole batch."""
    started = utc_now()
    t0 = time.perf_counter()
    tf = timeframe or (inputs[0].timeframe if inputs else config.refresh.timeframe)

    outcomes: Dict[str, SymbolOutcome] = {}
    for inp in inputs:
        outcomes[inp.symbol] = _compute_outcome(inp, config)

    events: List[AlertEvent] = []
    observations = [
        RsiObservation(o.symbol, o.timeframe, o.snapshot.oscillators.last_rsi)
        for o in outcomes.values()
        if o.snapshot is not None
        and o.snapshot.oscillators.last_rsi is not None
        and alerts_allowed(config, o.timeframe)
    ]
    if observations:
        events = detector.evaluate(observations)
        if sink is not None and events:
            sink.extend(events)

    result = RefreshResult(
        timeframe=tf,
        outcomes=outcomes,
        events=events,
        started_at_iso=started.isoformat(),
        duration_ms=(time.perf_counter() - t0) * 1000.0,
    )
    log.info(
        "refresh_cycle_done",
        timeframe=tf,
        ok=result.count("ok"),
        no_data=result.count("no_data"),
        failed=result.count("error"),
        alerts=len(events),
        duration_ms=round(result.duration_ms, 1),
    )
    return result


class SnapshotStore:
    """Holds the installed snapshot set; a refresh result replaces it as a whole."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: Mapping[str, SymbolSnapshot] = MappingProxyType({})
        self._outcomes: Mapping[str, SymbolOutcome] = MappingProxyType({})
        self.metrics = RefreshMetrics()

    @property
    def snapshots(self) -> Mapping[str, SymbolSnapshot]:
        return self._snapshots

    @property
    def outcomes(self) -> Mapping[str, SymbolOutcome]:
        return self._outcomes

    def get(self, symbol: str) -> Optional[SymbolSnapshot]:
        return self._snapshots.get(symbol)

    def install(self, result: RefreshResult) -> None:
        snapshots = MappingProxyType(dict(result.snapshots))
        outcomes = MappingProxyType(dict(result.outcomes))
        with self._lock:
            self._snapshots = snapshots
            self._outcomes = outcomes
            m = self.metrics
            m.cycles += 1
            m.timeframe = result.timeframe
            m.last_cycle_at_iso = result.started_at_iso
            m.last_cycle_ms = result.duration_ms
            m.symbols_ok = result.count("ok")
            m.symbols_no_data = result.count("no_data")
            m.symbols_failed = result.count("error")
            m.alerts_emitted += len(result.events)

    def record_error(self, error: str) -> None:
        with self._lock:
            self.metrics.last_error = error

    def metrics_snapshot(self) -> RefreshMetrics:
        """Consistent copy of the metrics (never half of one install)."""
        with self._lock:
            return replace(self.metrics)


async def run_engine(
    source: CandleSource,
    config: Optional[ScannerConfig] = None,
    config_path: Optional[Path] = None,
    store: Optional[SnapshotStore] = None,
    detector: Optional[ThresholdEdgeDetector] = None,
    sink: Optional[NotificationLog] = None,
    max_cycles: Optional[int] = None,
) -> SnapshotStore:
    """Fetch through `source`, refresh, install, sleep; forever unless max_cycles is set."""
    if config is None:
        config = load_config(config_path)
        configure_logging(config.log_level)

    store = store or SnapshotStore()
    detector = detector or ThresholdEdgeDetector(
        overbought=config.alerts.overbought,
        oversold=config.alerts.oversold,
    )
    sink = sink if sink is not None else NotificationLog(config.alerts.history_limit)

    symbols = list(config.refresh.symbols)
    timeframe = config.refresh.timeframe
    log.info("engine_started", symbols=len(symbols), timeframe=timeframe, interval=config.refresh.interval_seconds)

    cycles = 0
    while max_cycles is None or cycles < max_cycles:
        cycles += 1
        bind_cycle(cycle=cycles, timeframe=timeframe)
        try:
            inputs = await source(symbols, timeframe, config.refresh.kline_limit)
        except Exception as e:
            # Retry policy belongs to the source; keep the last installed snapshots
            log.error("candle_source_failed", error=str(e))
            store.record_error(f"{type(e).__name__}: {e}")
        else:
            result = run_refresh_cycle(inputs, detector, config, sink=sink, timeframe=timeframe)
            store.install(result)

        if max_cycles is not None and cycles >= max_cycles:
            break
        await asyncio.sleep(config.refresh.interval_seconds)

    return store
