"""Overbought / oversold edge detector (one status per symbol + timeframe)."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from rsi_scanner.infrastructure.logging.logging import get_logger
from rsi_scanner.models.alert_models import AlertEvent, AlertKey, AlertStatus

log = get_logger("alerts")


OVERBOUGHT = 70.0
OVERSOLD = 30.0


@dataclass(frozen=True)
class RsiObservation:
    symbol: str
    timeframe: str
    rsi: float


def classify(rsi: float, overbought: float = OVERBOUGHT, oversold: float = OVERSOLD) -> AlertStatus:
    if rsi >= overbought:
        return "overbought"
    if rsi <= oversold:
        return "oversold"
    return "neutral"


class ThresholdEdgeDetector:
    """
    Emits an AlertEvent only when a key moves INTO overbought or oversold.
    Staying pinned at an extreme, or dropping back to neutral, emits nothing.

    The whole status map is replaced per evaluate() call: old map is read, every new status
    is computed into a fresh dict, then the fresh dict is swapped in. Readers always see
    one complete generation. Keys are never removed.
    """

    def __init__(
        self,
        *,
        overbought: float = OVERBOUGHT,
        oversold: float = OVERSOLD,
        initial_state: Optional[Mapping[AlertKey, AlertStatus]] = None,
    ) -> None:
        if oversold >= overbought:
            raise ValueError("oversold must be lower than overbought")
        self.overbought = float(overbought)
        self.oversold = float(oversold)
        self._lock = threading.Lock()
        self._state: Mapping[AlertKey, AlertStatus] = MappingProxyType(dict(initial_state or {}))

    @property
    def state(self) -> Mapping[AlertKey, AlertStatus]:
        """Current read-only status map."""
        return self._state

    def status(self, symbol: str, timeframe: str) -> AlertStatus:
        return self._state.get((symbol, timeframe), "neutral")

    def evaluate(self, observations: Iterable[RsiObservation]) -> List[AlertEvent]:
        """Apply one refresh cycle's latest RSI values; returns the edge events."""
        with self._lock:
            old = self._state
            new: Dict[AlertKey, AlertStatus] = dict(old)
            events: List[AlertEvent] = []

            for obs in observations:
                key = (obs.symbol, obs.timeframe)
                previous = new.get(key, "neutral")
                current = classify(obs.rsi, self.overbought, self.oversold)
                if current != "neutral" and current != previous:
                    events.append(AlertEvent(obs.symbol, obs.timeframe, float(obs.rsi), current))
                new[key] = current

            self._state = MappingProxyType(new)

        for ev in events:
            log.info("rsi_alert", symbol=ev.symbol, timeframe=ev.timeframe, kind=ev.kind, rsi=round(ev.rsi, 2))
        return events
