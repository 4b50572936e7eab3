"""Per-cycle snapshot of the bars observed in the current interval."""

from functools import total_ordering
from typing import Iterator, Optional, Union

import pandas as pd

from data.security import Symbol
from data.types import DataPoint, TradeBar

SymbolKey = Union[Symbol, str]


@total_ordering
class Slice:
    """Bars for every symbol seen in ``(period_start, end_time]``.

    Built once per cycle by the data manager and handed to the strategy.
    Equality and ordering are defined by ``end_time`` only.
    """

    def __init__(self, end_time: int) -> None:
        self.end_time = end_time
        self._bars: dict[Symbol, TradeBar] = {}
        self._sealed = False

    def has_data(self) -> bool:
        return bool(self._bars)

    def add_bar(self, symbol: Symbol, bar: TradeBar) -> None:
        if self._sealed:
            raise RuntimeError("Slice is sealed; bars cannot be added after delivery")
        self._bars[symbol] = bar

    def seal(self) -> "Slice":
        """Freeze the slice once the cycle has finished building it."""
        self._sealed = True
        return self

    def add_datapoint(self, point: DataPoint) -> None:
        """Add a bar payload. Tick payloads are not part of a slice."""
        if isinstance(point.data, TradeBar):
            self.add_bar(point.symbol, point.data)

    def get_bar(self, symbol: SymbolKey) -> Optional[TradeBar]:
        key = self._resolve(symbol)
        if key is None:
            return None
        return self._bars.get(key)

    def symbols(self) -> list[Symbol]:
        return list(self._bars)

    def to_dataframe(self) -> pd.DataFrame:
        """Export the bars as one row per symbol."""
        columns = ["symbol", "open", "high", "low", "close", "volume", "start_time", "end_time"]
        if not self._bars:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([
            {
                "symbol": str(sym),
                "open": bar.open,
                "high": bar.high,
                "low": bar.low,
                "close": bar.close,
                "volume": bar.volume,
                "start_time": bar.start_time,
                "end_time": bar.end_time,
            }
            for sym, bar in self._bars.items()
        ], columns=columns)

    def _resolve(self, symbol: SymbolKey) -> Optional[Symbol]:
        if isinstance(symbol, Symbol):
            return symbol
        for key in self._bars:
            if key.ticker == symbol:
                return key
        return None

    def __getitem__(self, symbol: SymbolKey) -> TradeBar:
        bar = self.get_bar(symbol)
        if bar is None:
            raise KeyError(f"No bar for {symbol} in slice ending {self.end_time}")
        return bar

    def __contains__(self, symbol: SymbolKey) -> bool:
        return self.get_bar(symbol) is not None

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._bars)

    def __len__(self) -> int:
        return len(self._bars)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Slice):
            return NotImplemented
        return self.end_time == other.end_time

    def __lt__(self, other: "Slice") -> bool:
        if not isinstance(other, Slice):
            return NotImplemented
        return self.end_time < other.end_time

    def __hash__(self) -> int:
        return hash(self.end_time)

    def __repr__(self) -> str:
        end = pd.Timestamp(self.end_time, unit="ms", tz="UTC")
        return f"Slice(end_time={end}, has_data={self.has_data()}, symbols={[str(s) for s in self._bars]})"
