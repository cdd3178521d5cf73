from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Tuple


AlertStatus = Literal["overbought", "oversold", "neutral"]
AlertKind = Literal["overbought", "oversold"]

AlertKey = Tuple[str, str]   # (symbol, timeframe)


@dataclass(frozen=True)
class AlertEvent:
    symbol: str
    timeframe: str
    rsi: float
    kind: AlertKind         # "overbought" | "oversold"


@dataclass
class Notification:
    id: int
    event: AlertEvent
    created_at: datetime
    read: bool = False
