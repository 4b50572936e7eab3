"""Data feed contract and reference pandas-backed feeds.

A feed owns a finite, time-ordered sequence of DataPoints. Once connected to
the data manager's queue it pushes every point due at or before the shared
clock's ``now`` on each ``send_backtest`` call, preserving order.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Any, Optional

import numpy as np
import pandas as pd

from data.loader import load_csv, load_parquet, validate_dataframe
from data.security import Symbol
from data.types import DataPoint, Resolution, RunMode, Tick, TradeBar
from errors import FeedError

logger = logging.getLogger(__name__)

BAR_COLUMNS = ("time", "open", "high", "low", "close")
TICK_COLUMNS = ("time", "price")


class DataFeed(ABC):
    """Interface every feed adapter implements."""

    def __init__(self) -> None:
        self._clock: Optional[Any] = None
        self._sink: Optional[deque] = None
        self._mode: Optional[RunMode] = None

    def set_clock(self, clock: Any) -> None:
        """Share the simulation clock. Called by the data manager."""
        self._clock = clock

    @abstractmethod
    def get_symbols(self) -> list[tuple[Symbol, str]]:
        """Return ``(symbol, market)`` pairs served by this feed."""

    @abstractmethod
    def connect(self, sink: deque, mode: RunMode) -> None:
        """Prepare the feed and remember the queue it pushes into."""

    @abstractmethod
    def send_backtest(self) -> None:
        """Push every point due at or before the clock's ``now`` into the sink."""

    @abstractmethod
    def is_finished(self) -> bool:
        """True once every point has been sent."""


class _PointSequenceFeed(DataFeed):
    """Shared cursor logic for feeds that materialise their points on connect."""

    def __init__(self, symbol: Symbol, market: str = "usa") -> None:
        super().__init__()
        self.symbol = symbol
        self.market = market
        self._points: list[DataPoint] = []
        self._times: np.ndarray = np.empty(0, dtype=np.int64)
        self._cursor: int = 0
        self._connected: bool = False

    def get_symbols(self) -> list[tuple[Symbol, str]]:
        return [(self.symbol, self.market)]

    def connect(self, sink: deque, mode: RunMode) -> None:
        frame = self._read_frame()
        self._points = self._to_points(frame)
        self._times = np.fromiter((p.time for p in self._points), dtype=np.int64, count=len(self._points))
        self._cursor = 0
        self._sink = sink
        self._mode = RunMode(mode)
        self._connected = True
        logger.info("Feed %s connected with %d points", self.symbol, len(self._points))

    def send_backtest(self) -> None:
        if self._sink is None or self._clock is None:
            raise FeedError(f"Feed {self.symbol} must be connected to a queue and a clock before sending")
        end = int(np.searchsorted(self._times, self._clock.now(), side="right"))
        for point in self._points[self._cursor:end]:
            self._sink.append(point)
        self._cursor = max(self._cursor, end)

    def is_finished(self) -> bool:
        return self._connected and self._cursor >= len(self._points)

    def remaining(self) -> int:
        return len(self._points) - self._cursor

    def _read_frame(self) -> pd.DataFrame:
        try:
            return self._load_frame()
        except (OSError, ValueError, pd.errors.ParserError) as err:
            raise FeedError(f"Failed to load data for {self.symbol}: {err}") from err

    @abstractmethod
    def _load_frame(self) -> pd.DataFrame:
        ...

    @abstractmethod
    def _to_points(self, frame: pd.DataFrame) -> list[DataPoint]:
        ...


def _time_column_to_millis(times: pd.Series) -> np.ndarray:
    """Convert a datetime or epoch-millisecond column to int64 milliseconds."""
    if pd.api.types.is_numeric_dtype(times):
        return times.to_numpy(dtype=np.int64)
    if not pd.api.types.is_datetime64_any_dtype(times):
        times = pd.to_datetime(times, utc=True)
    elif times.dt.tz is None:
        times = times.dt.tz_localize("UTC")
    delta = times - pd.Timestamp(0, tz="UTC")
    return (delta // pd.Timedelta(milliseconds=1)).to_numpy(dtype=np.int64)


def _checked(frame: pd.DataFrame, path: Path) -> pd.DataFrame:
    for issue in validate_dataframe(frame):
        logger.warning("%s: %s", path, issue)
    return frame


def _check_columns(frame: pd.DataFrame, required: tuple[str, ...], symbol: Symbol) -> None:
    missing = [c for c in required if c not in frame.columns]
    if missing:
        raise FeedError(f"Data for {symbol} is missing columns: {missing}")


class DataFrameFeed(_PointSequenceFeed):
    """Bars for one symbol from a DataFrame.

    ``time`` is the bar open time (datetime or epoch ms); each bar is
    published at its close, ``time + resolution``. Rows are sorted ascending
    regardless of input order.
    """

    def __init__(
        self,
        symbol: Symbol,
        frame: Optional[pd.DataFrame] = None,
        resolution: Resolution = Resolution.DAY,
        market: str = "usa",
    ) -> None:
        super().__init__(symbol, market)
        self.resolution = Resolution.parse(resolution)
        self._frame = frame

    def _load_frame(self) -> pd.DataFrame:
        if self._frame is None:
            raise ValueError("no DataFrame supplied")
        return self._frame.copy()

    def _to_points(self, frame: pd.DataFrame) -> list[DataPoint]:
        _check_columns(frame, BAR_COLUMNS, self.symbol)
        if "volume" not in frame.columns:
            frame["volume"] = 0
        starts = _time_column_to_millis(frame["time"])
        order = np.argsort(starts, kind="stable")
        step = self.resolution.step

        points = []
        for idx in order:
            row = frame.iloc[idx]
            start = int(starts[idx])
            bar = TradeBar(
                open=row["open"],
                high=row["high"],
                low=row["low"],
                close=row["close"],
                volume=row["volume"],
                start_time=start,
                end_time=start + step,
                symbol=self.symbol,
                period=self.resolution,
            )
            points.append(DataPoint(self.symbol, bar.end_time, bar, self.resolution))
        return points


class CSVDataFeed(DataFrameFeed):
    """Daily (or other resolution) bars read from a CSV file on connect."""

    def __init__(
        self,
        symbol: Symbol,
        path: str | Path,
        resolution: Resolution = Resolution.DAY,
        market: str = "usa",
    ) -> None:
        super().__init__(symbol, None, resolution, market)
        self.path = Path(path)

    def _load_frame(self) -> pd.DataFrame:
        return _checked(load_csv(self.path), self.path)


class ParquetDataFeed(DataFrameFeed):
    """Bars read from a parquet file on connect."""

    def __init__(
        self,
        symbol: Symbol,
        path: str | Path,
        resolution: Resolution = Resolution.MINUTE,
        market: str = "usa",
    ) -> None:
        super().__init__(symbol, None, resolution, market)
        self.path = Path(path)

    def _load_frame(self) -> pd.DataFrame:
        return _checked(load_parquet(self.path), self.path)


class TickFrameFeed(_PointSequenceFeed):
    """Ticks (``time``, ``price``) for one symbol, published at their own timestamp.

    Used for FX spot streams: a tick on ``Symbol.fx("EUR", "USD")`` updates
    the EUR -> USD rate.
    """

    def __init__(self, symbol: Symbol, frame: pd.DataFrame, market: str = "fx") -> None:
        super().__init__(symbol, market)
        self._frame = frame

    def _load_frame(self) -> pd.DataFrame:
        return self._frame.copy()

    def _to_points(self, frame: pd.DataFrame) -> list[DataPoint]:
        _check_columns(frame, TICK_COLUMNS, self.symbol)
        times = _time_column_to_millis(frame["time"])
        prices = frame["price"].to_numpy()
        order = np.argsort(times, kind="stable")
        return [
            DataPoint(self.symbol, int(times[i]), Tick(prices[i]), Resolution.TICK)
            for i in order
        ]
