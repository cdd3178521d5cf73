# rsi_scanner/api/state.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rsi_scanner.app.engine import SnapshotStore
from rsi_scanner.infrastructure.utils.config import ScannerConfig
from rsi_scanner.services.alerts.edge_detector import ThresholdEdgeDetector
from rsi_scanner.services.alerts.notification_log import NotificationLog


@dataclass
class AppState:
    config: ScannerConfig
    store: SnapshotStore
    detector: ThresholdEdgeDetector
    notifications: NotificationLog

    @classmethod
    def from_config(cls, config: ScannerConfig) -> "AppState":
        return cls(
            config=config,
            store=SnapshotStore(),
            detector=ThresholdEdgeDetector(
                overbought=config.alerts.overbought,
                oversold=config.alerts.oversold,
            ),
            notifications=NotificationLog(config.alerts.history_limit),
        )


_state: Optional[AppState] = None


def set_state(state: AppState) -> None:
    global _state
    _state = state


def get_state() -> AppState:
    if _state is None:
        raise RuntimeError("API state not initialized. Run a refresh cycle first (or init state).")
    return _state
