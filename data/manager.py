"""Market data manager: owns the feeds and builds one Slice per cycle."""

import logging
from collections import deque
from typing import Any, Optional

from data.feed import DataFeed
from data.fx import ExchangeRateCache
from data.security import Symbol
from data.slice import Slice
from data.types import DataPoint, RunMode
from errors import ConfigError, FeedError

logger = logging.getLogger(__name__)


class DataManager:
    """Advances feeds, routes their points and maintains the FX cache.

    Each cycle: ``feeds_send_backtest`` flushes due points into a shared FIFO
    queue, then ``get_slice`` drains it. Points inside ``(period_start, now]``
    go into the Slice, every drained point is republished to the fill intake,
    and FX symbols update the exchange rate cache.
    """

    def __init__(self, clock: Any, mode: RunMode = RunMode.BACKTEST) -> None:
        self._clock = clock
        self._mode = RunMode(mode)
        self._queue: deque[DataPoint] = deque()
        self._fill_queue: Optional[deque[DataPoint]] = None
        self._feeds: dict[str, DataFeed] = {}
        self._securities: dict[Symbol, str] = {}
        self.fx = ExchangeRateCache()

    def add_feed(self, feed: DataFeed, name: Optional[str] = None) -> str:
        """Register a feed under ``name`` (defaults to its first symbol)."""
        if name is None:
            symbols = feed.get_symbols()
            name = str(symbols[0][0]) if symbols else f"feed_{len(self._feeds)}"
        if name in self._feeds:
            raise ConfigError(f"A feed named '{name}' is already registered")

        feed.set_clock(self._clock)
        self._feeds[name] = feed
        for symbol, market in feed.get_symbols():
            self._securities[symbol] = market
        return name

    def connect(self) -> None:
        """Connect every feed to the shared queue. Failures are fatal."""
        for name, feed in self._feeds.items():
            try:
                feed.connect(self._queue, self._mode)
            except FeedError:
                logger.error("Feed '%s' failed to connect", name)
                raise
        logger.info("Connected %d feed(s) in %s mode", len(self._feeds), self._mode.value)

    def with_fill_sender(self) -> deque:
        """Create and return the queue that receives every drained point."""
        self._fill_queue = deque()
        return self._fill_queue

    def feeds_send_backtest(self) -> None:
        for name, feed in self._feeds.items():
            try:
                feed.send_backtest()
            except FeedError:
                logger.error("Feed '%s' failed while sending data", name)
                raise

    def get_slice(self) -> Slice:
        """Drain everything currently queued into a new Slice."""
        now = self._clock.now()
        start = self._clock.period_start()
        current = Slice(now)

        while self._queue:
            point = self._queue.popleft()
            if start < point.time <= now:
                current.add_datapoint(point)

            if point.symbol.is_fx:
                self.fx.update(point.symbol.base, point.symbol.quote, point.spot)

            if self._fill_queue is not None:
                self._fill_queue.append(point)

        return current.seal()

    def is_finished(self) -> bool:
        return all(feed.is_finished() for feed in self._feeds.values())

    def symbol_exists(self, symbol: Symbol) -> bool:
        return symbol in self._securities

    @property
    def feeds(self) -> dict[str, DataFeed]:
        return dict(self._feeds)
