"""Shared test fixtures for the backtesting core."""

import sys
from pathlib import Path

import pandas as pd
import pytest

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from data.security import Security, Symbol
from data.types import DataPoint, Resolution, Tick, TradeBar

DAY_MS = 86_400_000

# AAPL daily bars, 2022-04-04 .. 2022-04-07 (open times, epoch ms)
AAPL_DAILY = [
    # start,         open,       high,       low,        close,      volume
    (1649030400000, 174.570007, 178.490005, 174.440002, 178.440002, 76468400.0),
    (1649116800000, 177.5,      178.300003, 174.419998, 175.059998, 73401800.0),
    (1649203200000, 172.360001, 173.630005, 170.130005, 171.830002, 89058800.0),
    (1649289600000, 171.160004, 173.360001, 169.850006, 172.139999, 77594700.0),
]
AAPL_FIRST_START = AAPL_DAILY[0][0]
AAPL_LAST_END = AAPL_DAILY[-1][0] + DAY_MS


def make_bar_point(
    symbol: Symbol,
    start: int,
    open_: float,
    high: float = None,
    low: float = None,
    close: float = None,
    volume: float = 0.0,
    resolution: Resolution = Resolution.DAY,
) -> DataPoint:
    """A bar DataPoint published at the bar's close time."""
    bar = TradeBar(
        open=open_,
        high=open_ if high is None else high,
        low=open_ if low is None else low,
        close=open_ if close is None else close,
        volume=volume,
        start_time=start,
        end_time=start + resolution.step,
        symbol=symbol,
        period=resolution,
    )
    return DataPoint(symbol, bar.end_time, bar, resolution)


def make_tick_point(symbol: Symbol, time: int, price: float) -> DataPoint:
    return DataPoint(symbol, time, Tick(price), Resolution.TICK)


@pytest.fixture
def aapl() -> Symbol:
    return Symbol.equity("AAPL")


@pytest.fixture
def usd_equity() -> Security:
    return Security.equity("USD")


@pytest.fixture
def aapl_points(aapl) -> list[DataPoint]:
    """The four AAPL daily bars as DataPoints."""
    return [
        make_bar_point(aapl, start, o, h, low, c, v)
        for start, o, h, low, c, v in AAPL_DAILY
    ]


@pytest.fixture
def aapl_frame() -> pd.DataFrame:
    """The four AAPL daily bars as a DataFrame keyed by open time (ms)."""
    return pd.DataFrame(
        AAPL_DAILY,
        columns=["time", "open", "high", "low", "close", "volume"],
    )


@pytest.fixture
def aapl_csv(tmp_path, aapl_frame) -> Path:
    """Yahoo-Finance style CSV of the AAPL bars."""
    df = aapl_frame.copy()
    df.insert(0, "Date", pd.to_datetime(df.pop("time"), unit="ms").dt.strftime("%Y-%m-%d"))
    df = df.rename(columns={
        "open": "Open", "high": "High", "low": "Low", "close": "Close", "volume": "Volume",
    })
    df["Adj Close"] = df["Close"]
    path = tmp_path / "AAPL.csv"
    df.to_csv(path, index=False)
    return path
