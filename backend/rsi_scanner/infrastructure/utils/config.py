"""Configuration management for the scanner.

Rules:
- YAML provides the defaults (symbols, timeframe, indicator periods, alert thresholds).
- A handful of runtime knobs can be overridden from .env / environment variables; env wins.
- We do NOT inject YAML into os.environ.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rsi_scanner.models.market_models import TIMEFRAMES


DEFAULT_SYMBOLS: List[str] = [
    "BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT",
    "ADAUSDT", "DOGEUSDT", "AVAXUSDT", "LINKUSDT", "DOTUSDT",
]

DEFAULT_ALERT_TIMEFRAMES: List[str] = ["5m", "15m", "30m", "1h", "2h", "4h", "8h", "1d", "3d", "1w"]


def _check_timeframe(v: str) -> str:
    v = str(v).strip()
    if v not in TIMEFRAMES:
        raise ValueError(f"timeframe must be one of: {TIMEFRAMES}")
    return v


class IndicatorConfig(BaseModel):
    """RSI / Stochastic-RSI periods."""

    rsi_period: int = Field(default=14, ge=2, le=100)
    stoch_lookback: int = Field(default=14, ge=2, le=100)
    stoch_smoothing: int = Field(default=3, ge=1, le=20)


class VolumeProfileConfig(BaseModel):
    """Bucket counts for the chart profile and the coarser weekly/monthly reference profiles."""

    resolution: int = Field(default=100, ge=2, le=1000)
    htf_resolution: int = Field(default=30, ge=2, le=1000)
    value_area_pct: float = Field(default=0.70, gt=0.0, le=1.0)

    @field_validator("htf_resolution")
    @classmethod
    def validate_htf_resolution(cls, v: int, info) -> int:
        if "resolution" in info.data and v >= info.data["resolution"]:
            raise ValueError("htf_resolution must be lower than resolution")
        return v


class AlertConfig(BaseModel):
    enabled: bool = Field(default=True, description="Emit overbought/oversold alerts")
    overbought: float = Field(default=70.0, gt=50.0, le=100.0)
    oversold: float = Field(default=30.0, ge=0.0, lt=50.0)
    timeframes: List[str] = Field(default_factory=lambda: list(DEFAULT_ALERT_TIMEFRAMES))
    """Timeframes allowed to raise alerts (1m/3m are too noisy)."""
    history_limit: int = Field(default=25, ge=1, le=1000)

    @field_validator("oversold")
    @classmethod
    def validate_thresholds(cls, v: float, info) -> float:
        if "overbought" in info.data and v >= info.data["overbought"]:
            raise ValueError("oversold must be lower than overbought")
        return v

    @field_validator("timeframes")
    @classmethod
    def validate_timeframes(cls, v: List[Any]) -> List[str]:
        return [_check_timeframe(x) for x in v]


class RefreshConfig(BaseModel):
    symbols: List[str] = Field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    timeframe: str = Field(default="15m")
    interval_seconds: int = Field(default=60, ge=5, le=3600)
    kline_limit: int = Field(default=500, ge=20, le=1000)

    @field_validator("timeframe")
    @classmethod
    def validate_timeframe(cls, v: str) -> str:
        return _check_timeframe(v)

    @field_validator("symbols")
    @classmethod
    def validate_symbols(cls, v: List[Any]) -> List[str]:
        out: List[str] = []
        for x in v:
            s = str(x).strip().upper() if x else ""
            if s and s not in out:
                out.append(s)
        return out


class APIConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1024, le=65535)
    cors_origins: List[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])


class ScannerConfig(BaseSettings):
    """Main configuration for the scanner (YAML base + explicit env overrides)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")

    indicators: IndicatorConfig = Field(default_factory=IndicatorConfig)
    volume_profile: VolumeProfileConfig = Field(default_factory=VolumeProfileConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(v).upper() not in valid:
            raise ValueError(f"Log level must be one of: {sorted(valid)}")
        return str(v).upper()

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "ScannerConfig":
        """Load configuration from YAML, then apply env overrides on top and validate once."""
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(data, dict):
            raise ValueError("Configuration root must be a mapping")

        _apply_env_overrides(data)

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Configuration validation error: {e}")


def _apply_env_overrides(data: Dict[str, Any]) -> None:
    if os.getenv("LOG_LEVEL"):
        data["log_level"] = os.getenv("LOG_LEVEL")

    refresh = data.setdefault("refresh", {}) or {}
    data["refresh"] = refresh
    if os.getenv("REFRESH__INTERVAL_SECONDS"):
        refresh["interval_seconds"] = os.getenv("REFRESH__INTERVAL_SECONDS")
    if os.getenv("REFRESH__TIMEFRAME"):
        refresh["timeframe"] = os.getenv("REFRESH__TIMEFRAME")

    alerts_env = os.getenv("ALERTS__ENABLED")
    if alerts_env is not None:
        alerts = data.setdefault("alerts", {}) or {}
        data["alerts"] = alerts
        alerts["enabled"] = str(alerts_env).lower() in ("1", "true", "yes")


def load_config(config_path: Optional[Path] = None) -> ScannerConfig:
    """Load configuration from YAML + .env (env wins)."""
    load_dotenv(dotenv_path=Path(".env"))

    if config_path is None:
        # run from backend/ or from the repo root
        possible_paths = [
            Path("config/default.yaml"),
            Path("config/config.yaml"),
            Path("backend/config/default.yaml"),
            Path("config.yaml"),
        ]
        for path in possible_paths:
            if path.exists():
                config_path = path
                break
        else:
            raise FileNotFoundError("No scanner config found (config/default.yaml); pass --config explicitly.")

    return ScannerConfig.from_yaml(config_path)
