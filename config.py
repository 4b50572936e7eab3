"""Global configuration loader for the backtesting engine."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, get_type_hints

import yaml


@dataclass
class FeedConfig:
    symbol: str = ""
    path: str = ""
    kind: str = "csv"  # csv | parquet
    currency: str = "USD"
    minimum_price_variation: float = 0.01


@dataclass
class DataConfig:
    data_path: str = "data/"
    feeds: dict[str, FeedConfig] = field(default_factory=dict)


@dataclass
class BacktestConfig:
    mode: Optional[str] = None
    resolution: Optional[str] = None
    start_time: Optional[str] = None
    commission: float = 0
    slippage: float = 0
    reporting_currency: str = "USD"
    initial_cash: float = 0


@dataclass
class Config:
    data: DataConfig = field(default_factory=DataConfig)
    backtest: BacktestConfig = field(default_factory=BacktestConfig)


def _build_nested(cls: type, raw: dict[str, Any]) -> Any:
    """Recursively build a dataclass from a dict."""
    if not isinstance(raw, dict):
        return raw
    dc_fields = getattr(cls, "__dataclass_fields__", {})
    # Use typing.get_type_hints to safely resolve string annotations
    try:
        resolved_hints = get_type_hints(cls)
    except Exception:
        resolved_hints = {}
    kwargs: dict[str, Any] = {}
    for key, val in raw.items():
        if key not in dc_fields:
            continue
        field_type = resolved_hints.get(key, dc_fields[key].type)
        if isinstance(field_type, str):
            kwargs[key] = val
            continue
        origin = getattr(field_type, "__origin__", None)
        if hasattr(field_type, "__dataclass_fields__") and isinstance(val, dict):
            kwargs[key] = _build_nested(field_type, val)
        elif origin is dict and isinstance(val, dict):
            args = getattr(field_type, "__args__", None)
            if args and len(args) == 2 and hasattr(args[1], "__dataclass_fields__"):
                kwargs[key] = {
                    k: _build_nested(args[1], v) for k, v in val.items()
                }
            else:
                kwargs[key] = val
        else:
            kwargs[key] = val
    return cls(**kwargs)


def load_config(path: str | Path = "config.yaml") -> Config:
    """Load configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        return Config()
    with open(path) as f:
        raw = yaml.safe_load(f)
    if not raw:
        return Config()
    return _build_nested(Config, raw)
