"""In-memory refresh metrics for the API + logs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class RefreshMetrics:
    cycles: int = 0
    timeframe: str = ""
    last_cycle_at_iso: Optional[str] = None
    last_cycle_ms: Optional[float] = None
    symbols_ok: int = 0
    symbols_no_data: int = 0
    symbols_failed: int = 0
    alerts_emitted: int = 0
    last_error: Optional[str] = None
