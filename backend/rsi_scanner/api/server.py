# rsi_scanner/api/server.py
from __future__ import annotations

import asyncio
import contextlib
from dataclasses import asdict
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from rsi_scanner.api.state import AppState, get_state, set_state
from rsi_scanner.app.engine import CandleSource, run_engine
from rsi_scanner.infrastructure.logging.logging import get_logger

JsonDict = Dict[str, Any]

log = get_logger("api")


def _summary(symbol: str, state: AppState) -> JsonDict:
    outcome = state.store.outcomes.get(symbol)
    snap = state.store.get(symbol)
    out: JsonDict = {
        "symbol": symbol,
        "status": outcome.status if outcome else "unknown",
        "error": outcome.error if outcome else None,
    }
    if snap is not None:
        out.update(
            {
                "timeframe": snap.timeframe,
                "price": snap.price,
                "change_pct": snap.change_pct,
                "rsi": snap.oscillators.last_rsi,
                "stoch_k": snap.oscillators.last_stoch_k,
                "alert_status": state.detector.status(snap.symbol, snap.timeframe),
            }
        )
    return out


def create_app(
    state: Optional[AppState] = None,
    source: Optional[CandleSource] = None,
    max_cycles: Optional[int] = None,
) -> FastAPI:
    """
    Build the API. With a candle `source`, the refresh loop runs as a background
    task for the lifetime of the server and keeps the store up to date.
    """
    if state is not None:
        set_state(state)
    if source is not None and state is None:
        raise ValueError("a candle source needs an AppState to refresh into")

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if source is None:
            yield
            return
        task = asyncio.create_task(
            run_engine(
                source,
                config=state.config,
                store=state.store,
                detector=state.detector,
                sink=state.notifications,
                max_cycles=max_cycles,
            )
        )
        log.info("refresh_task_started", interval=state.config.refresh.interval_seconds)
        try:
            yield
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            log.info("refresh_task_stopped")

    origins = state.config.api.cors_origins if state is not None else ["http://localhost:5173", "http://localhost:3000"]

    app = FastAPI(title="Crypto RSI Scanner API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> JsonDict:
        return {"ok": True}

    @app.get("/config")
    def config() -> JsonDict:
        s = get_state()
        return {"ok": True, "config": s.config.model_dump()}

    @app.get("/metrics")
    def metrics() -> JsonDict:
        s = get_state()
        return {"ok": True, "metrics": asdict(s.store.metrics_snapshot())}

    @app.get("/symbols")
    def symbols() -> JsonDict:
        s = get_state()
        return {"ok": True, "symbols": [_summary(sym, s) for sym in s.store.outcomes]}

    @app.get("/symbols/{symbol}")
    def symbol_detail(symbol: str, include_candles: bool = True) -> JsonDict:
        s = get_state()
        snap = s.store.get(symbol.upper())
        if snap is None:
            raise HTTPException(status_code=404, detail=f"no snapshot for {symbol}")
        data = asdict(snap)
        if not include_candles:
            data.pop("candles", None)
        return {"ok": True, "snapshot": data}

    @app.get("/alerts")
    def alerts(limit: int = 25) -> JsonDict:
        s = get_state()
        items: List[JsonDict] = [asdict(n) for n in s.notifications.list(limit)]
        return {"ok": True, "unread": s.notifications.unread_count(), "alerts": items}

    @app.post("/alerts/read")
    def mark_alerts_read() -> JsonDict:
        s = get_state()
        s.notifications.mark_all_read()
        return {"ok": True, "unread": 0}

    @app.delete("/alerts")
    def clear_alerts() -> JsonDict:
        s = get_state()
        deleted = s.notifications.clear()
        log.info("alerts_cleared", deleted=deleted)
        return {"ok": True, "deleted": deleted}

    return app
