"""Entrypoint.

Usage:
  python -m rsi_scanner.app.main scan --input klines.json     # one refresh cycle, JSON summary on stdout
  python -m rsi_scanner.app.main api --input klines.json      # serve the API, refreshing every interval
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import uvicorn

from rsi_scanner.api.server import create_app
from rsi_scanner.api.state import AppState
from rsi_scanner.app.engine import SnapshotStore, run_engine
from rsi_scanner.app.file_source import FileCandleSource
from rsi_scanner.infrastructure.logging.logging import configure_logging, get_logger
from rsi_scanner.infrastructure.utils.config import ScannerConfig, load_config


def summarize(store: SnapshotStore) -> Dict[str, Any]:
    rows: List[Dict[str, Any]] = []
    for symbol, outcome in store.outcomes.items():
        row: Dict[str, Any] = {"symbol": symbol, "status": outcome.status}
        snap = outcome.snapshot
        if snap is not None:
            row.update(
                price=snap.price,
                change_pct=round(snap.change_pct, 4),
                rsi=snap.oscillators.last_rsi,
                stoch_k=snap.oscillators.last_stoch_k,
                poc=snap.profile.poc if snap.profile else None,
                weekly_poc=snap.htf_levels.weekly.poc,
                monthly_poc=snap.htf_levels.monthly.poc,
            )
        elif outcome.error:
            row["error"] = outcome.error
        rows.append(row)
    return {"timeframe": store.metrics_snapshot().timeframe, "symbols": rows}


def _load(args: argparse.Namespace) -> ScannerConfig:
    config = load_config(Path(args.config) if args.config else None)
    if args.timeframe:
        config.refresh.timeframe = ScannerConfig.model_validate(
            {"refresh": {"timeframe": args.timeframe}}
        ).refresh.timeframe
    configure_logging(config.log_level, stream=sys.stderr if args.command == "scan" else None)
    return config


async def _refresh_once(state: AppState, source: FileCandleSource) -> SnapshotStore:
    return await run_engine(
        source,
        config=state.config,
        store=state.store,
        detector=state.detector,
        sink=state.notifications,
        max_cycles=1,
    )


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser("crypto-rsi-scanner")
    parser.add_argument("command", choices=["scan", "api"], help="What to run")
    parser.add_argument("--input", required=True, help="JSON file with klines per symbol")
    parser.add_argument("--config", default=None, help="YAML config path (default: config/default.yaml)")
    parser.add_argument("--timeframe", default=None, help="Override refresh.timeframe")
    args = parser.parse_args(argv)

    config = _load(args)
    log = get_logger("main")
    state = AppState.from_config(config)
    source = FileCandleSource(Path(args.input))

    if args.command == "scan":
        asyncio.run(_refresh_once(state, source))
        out = summarize(state.store)
        out["alerts"] = [asdict(n.event) for n in state.notifications.list()]
        print(json.dumps(out, indent=2))
        return

    if args.command == "api":
        # the server re-reads the source every refresh.interval_seconds
        log.info("api_starting", host=config.api.host, port=config.api.port)
        uvicorn.run(create_app(state, source=source), host=config.api.host, port=config.api.port, reload=False)
        return


if __name__ == "__main__":
    main()
