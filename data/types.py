"""Market data types shared by feeds, the data manager and the fill engine.

Timestamps are integer milliseconds since the Unix epoch (UTC).
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Union

import numpy as np
import pandas as pd

from data.security import Symbol

TimeLike = Union[int, str, date, datetime, pd.Timestamp]


def to_millis(value: TimeLike) -> int:
    """Convert a timestamp-like value to epoch milliseconds (naive = UTC)."""
    if isinstance(value, (int, np.integer)):
        return int(value)
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return int(ts.value // 1_000_000)


class RunMode(str, Enum):
    """Execution mode. Only BACKTEST drives the simulation loop."""

    BACKTEST = "BACKTEST"
    LIVE_TRADE = "LIVE_TRADE"
    PAPER_TRADE = "PAPER_TRADE"
    UNIT_TEST = "UNIT_TEST"


class Resolution(int, Enum):
    """Fixed time step of a feed or of the simulation clock, in milliseconds."""

    TICK = 1
    SECOND = 1_000
    MINUTE = 60_000
    HOUR = 3_600_000
    DAY = 86_400_000
    WEEK = 604_800_000

    @property
    def step(self) -> int:
        return int(self.value)

    @classmethod
    def parse(cls, value: Union[str, int, "Resolution"]) -> "Resolution":
        """Accept a member, its name (any case) or its millisecond value."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(
                    f"Unknown resolution: {value}. "
                    f"Supported: {[r.name for r in cls]}"
                ) from None
        return cls(int(value))


@dataclass(frozen=True)
class TradeBar:
    """OHLCV bar covering ``[start_time, end_time)``."""

    open: Any
    high: Any
    low: Any
    close: Any
    volume: Any
    start_time: int
    end_time: int
    symbol: Symbol
    period: Resolution
    is_fill_fwd: bool = False

    def __str__(self) -> str:
        return (
            f"{self.symbol} [{pd.Timestamp(self.start_time, unit='ms', tz='UTC')} -> "
            f"{pd.Timestamp(self.end_time, unit='ms', tz='UTC')}] "
            f"O={self.open} H={self.high} L={self.low} C={self.close} V={self.volume}"
        )


@dataclass(frozen=True)
class Tick:
    """Single trade or quote price."""

    price: Any


@dataclass(frozen=True)
class DataPoint:
    """A timestamped observation for one symbol. Immutable once created."""

    symbol: Symbol
    time: int
    data: Union[TradeBar, Tick]
    period: Resolution

    @property
    def is_bar(self) -> bool:
        return isinstance(self.data, TradeBar)

    @property
    def spot(self) -> Any:
        """Latest traded price: bar close or tick price."""
        if isinstance(self.data, TradeBar):
            return self.data.close
        return self.data.price
