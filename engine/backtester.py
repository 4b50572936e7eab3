"""Main backtest orchestrator: cycle-by-cycle loop from feeds to ledger."""

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

import pandas as pd

from config import BacktestConfig, Config, DataConfig
from data.feed import CSVDataFeed, DataFeed, ParquetDataFeed
from data.manager import DataManager
from data.security import Currency, Security, Symbol
from data.slice import Slice
from data.types import Resolution, RunMode, TimeLike, to_millis
from engine.broker import BacktestingBroker
from engine.clock import Clock
from engine.events import EventLog, EventType
from engine.fill import BasicFillEngine
from engine.orders import MarketOrder, Order, OrderOutcome, Side
from engine.portfolio import Portfolio
from engine.slippage import SimpleSlippageModel
from errors import ConfigError, FeedError

logger = logging.getLogger(__name__)

AlgorithmCallback = Callable[[Slice, "EngineHandle"], None]


@dataclass
class BacktestResult:
    """Complete output of a backtest run."""
    cycles: int
    final_time: int
    cash: dict[Currency, Any]
    holdings: dict[Symbol, Any]
    orders: pd.DataFrame
    events: pd.DataFrame


def _as_symbol(symbol: Symbol | str) -> Symbol:
    if isinstance(symbol, Symbol):
        return symbol
    return Symbol.equity(symbol)


class EngineHandle:
    """What a strategy callback may see and do during ``on_data``."""

    def __init__(self, engine: "Backtester") -> None:
        self._engine = engine

    @property
    def time(self) -> int:
        return self._engine.clock.now()

    @property
    def timestamp(self) -> pd.Timestamp:
        return self._engine.clock.now_timestamp()

    def cash(self, currency: Optional[Currency] = None) -> Optional[Any]:
        return self._engine.portfolio.get_cash(currency)

    def cash_balances(self) -> dict[Currency, Any]:
        return self._engine.portfolio.cash_balances()

    def holding(self, symbol: Symbol | str) -> Optional[Any]:
        return self._engine.portfolio.get_holding(_as_symbol(symbol))

    def holdings(self) -> dict[Symbol, Any]:
        return self._engine.portfolio.holdings()

    def submit_market_order(self, symbol: Symbol | str, volume: Any, side: Side | str) -> str:
        """Queue a market order; it is first eligible to fill next cycle."""
        return self._engine.submit_market_order(_as_symbol(symbol), volume, Side(side))

    def filled_orders(self) -> dict[str, OrderOutcome]:
        return self._engine.portfolio.get_filled_orders()

    def open_orders(self) -> Mapping[str, Order]:
        return self._engine.broker.open_orders

    def exchange_rate(self, source: Currency, target: Currency) -> Optional[Any]:
        rate = self._engine.data_manager.fx.lookup(source, target)
        return rate.rate if rate is not None else None


class Backtester:
    """Drives the simulation: feeds -> slice -> broker -> algorithm -> clock.

    Owns the clock and the portfolio; the broker writes to the portfolio and
    the fill engine reads from it, one component at a time.
    """

    def __init__(
        self,
        clock: Clock,
        mode: RunMode,
        algo: AlgorithmCallback,
        broker: BacktestingBroker,
        reporting_currency: Currency = Currency.USD,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self.clock = clock
        self.mode = RunMode(mode)
        self.algo = algo
        self.event_log = event_log if event_log is not None else EventLog()
        self.portfolio = Portfolio(reporting_currency)
        self.data_manager = DataManager(clock, self.mode)
        self.broker = broker
        if self.broker.event_log is None:
            self.broker.event_log = self.event_log

        self.broker.connect(self.clock, self.portfolio)
        self.broker.connect_to_data(self.data_manager.with_fill_sender())

        self.handle = EngineHandle(self)
        self._order_ids = itertools.count(1)
        self._cycles = 0

    @staticmethod
    def builder() -> "EngineBuilder":
        return EngineBuilder()

    def add_feed(self, feed: DataFeed, name: Optional[str] = None) -> str:
        return self.data_manager.add_feed(feed, name)

    def add_security(self, symbol: Symbol, details: Security) -> None:
        self.portfolio.register_security(symbol, details)

    def add_equity(self, ticker: str, currency: Currency = Currency.USD) -> Symbol:
        symbol = Symbol.equity(ticker)
        self.add_security(symbol, Security.equity(currency))
        return symbol

    def set_cash(self, currency: Currency, amount: Any) -> None:
        self.portfolio.set_cash(currency, amount)

    def add_feeds_from_config(self, data_config: DataConfig) -> None:
        """Register a file feed and its security for each configured entry."""
        resolution = self.clock.resolution
        for name, feed_cfg in data_config.feeds.items():
            ticker = feed_cfg.symbol or name
            symbol = Symbol.equity(ticker)
            path = feed_cfg.path or f"{data_config.data_path.rstrip('/')}/{ticker}.{feed_cfg.kind}"
            if feed_cfg.kind == "csv":
                feed = CSVDataFeed(symbol, path, resolution)
            elif feed_cfg.kind == "parquet":
                feed = ParquetDataFeed(symbol, path, resolution)
            else:
                raise ConfigError(f"Unknown feed kind '{feed_cfg.kind}' for {name}")
            self.add_feed(feed, name)
            self.add_security(symbol, Security(
                currency=Currency(feed_cfg.currency),
                minimum_price_variation=feed_cfg.minimum_price_variation,
            ))

    def submit_market_order(self, symbol: Symbol, volume: Any, side: Side) -> str:
        order = MarketOrder(
            id=str(next(self._order_ids)),
            symbol=symbol,
            timestamp=self.clock.now(),
            volume=volume,
            side=side,
        )
        self.broker.submit_order(order)
        return order.id

    def run(self) -> BacktestResult:
        """Connect feeds and, in BACKTEST mode, step until every feed is exhausted."""
        self._connect_feeds()

        if self.mode == RunMode.BACKTEST:
            self._run_backtest()
        else:
            logger.warning("Run mode %s does not drive the simulation loop", self.mode.value)

        self.event_log.emit(EventType.RUN_FINISHED, self.clock.now(), cycles=self._cycles)
        logger.info(
            "Backtest finished after %d cycles at %s", self._cycles, self.clock.now_timestamp(),
        )
        return BacktestResult(
            cycles=self._cycles,
            final_time=self.clock.now(),
            cash=self.portfolio.cash_balances(),
            holdings=self.portfolio.holdings(),
            orders=self.portfolio.history_frame(),
            events=self.event_log.to_dataframe(),
        )

    def _connect_feeds(self) -> None:
        try:
            self.data_manager.connect()
        except FeedError as err:
            self.event_log.emit(EventType.FEED_ERROR, self.clock.now(), error=str(err))
            raise
        self.event_log.emit(
            EventType.FEED_CONNECTED, self.clock.now(), feeds=list(self.data_manager.feeds),
        )

    def _run_backtest(self) -> None:
        while not self.data_manager.is_finished():
            self.step()

    def step(self) -> Slice:
        """Run one cycle and return the slice the algorithm saw (or would have)."""
        try:
            self.data_manager.feeds_send_backtest()
        except FeedError as err:
            self.event_log.emit(EventType.FEED_ERROR, self.clock.now(), error=str(err))
            raise

        current = self.data_manager.get_slice()
        self.broker.next_cycle()

        if current.has_data():
            self.algo(current, self.handle)

        self.clock.advance(self.mode)
        self._cycles += 1
        return current

    @property
    def cycles(self) -> int:
        return self._cycles


class EngineBuilder:
    """Collects engine settings; ``build`` fails with ConfigError on gaps."""

    def __init__(self) -> None:
        self._mode: Optional[RunMode] = None
        self._resolution: Optional[Resolution] = None
        self._start_time: Optional[int] = None
        self._algo: Optional[AlgorithmCallback] = None
        self._broker: Optional[BacktestingBroker] = None
        self._commission: Optional[Any] = None
        self._slippage: Optional[Any] = None
        self._reporting_currency: Currency = Currency.USD
        self._initial_cash: Optional[Any] = None

    def with_mode(self, mode: RunMode | str) -> "EngineBuilder":
        self._mode = RunMode(mode)
        return self

    def with_resolution(self, resolution: Resolution | str | int) -> "EngineBuilder":
        self._resolution = Resolution.parse(resolution)
        return self

    def with_start_time(self, time: TimeLike) -> "EngineBuilder":
        self._start_time = to_millis(time)
        return self

    def with_start_time_unix(self, millis: int) -> "EngineBuilder":
        self._start_time = int(millis)
        return self

    def with_algo(self, algo: AlgorithmCallback) -> "EngineBuilder":
        self._algo = algo
        return self

    def with_broker(self, broker: BacktestingBroker) -> "EngineBuilder":
        """Use ``broker`` as is. Commission and slippage then come from its
        fill engine, so combining this with ``with_commission`` or
        ``with_slippage`` fails at ``build``.
        """
        self._broker = broker
        return self

    def with_commission(self, commission: Any) -> "EngineBuilder":
        self._commission = commission
        return self

    def with_slippage(self, slippage: Any) -> "EngineBuilder":
        self._slippage = slippage
        return self

    def with_reporting_currency(self, currency: Currency | str) -> "EngineBuilder":
        self._reporting_currency = Currency(currency)
        return self

    def with_initial_cash(self, amount: Any) -> "EngineBuilder":
        self._initial_cash = amount
        return self

    def from_config(self, config: BacktestConfig) -> "EngineBuilder":
        """Apply every field set in ``config``; unset required fields stay unset."""
        if config.mode is not None:
            self.with_mode(config.mode)
        if config.resolution is not None:
            self.with_resolution(config.resolution)
        if config.start_time is not None:
            self.with_start_time(config.start_time)
        if config.commission:
            self.with_commission(config.commission)
        if config.slippage:
            self.with_slippage(config.slippage)
        self.with_reporting_currency(config.reporting_currency)
        if config.initial_cash:
            self.with_initial_cash(config.initial_cash)
        return self

    def build(self) -> Backtester:
        if self._resolution is None:
            raise ConfigError("Must set the minimum resolution of the data")
        if self._mode is None:
            raise ConfigError("Engine must have a run mode")
        if self._start_time is None:
            raise ConfigError("Engine must have a start time")
        if self._algo is None:
            raise ConfigError("Algorithm must be added before engine can be built")

        broker = self._broker
        if broker is not None:
            if self._commission is not None or self._slippage is not None:
                raise ConfigError("Commission and slippage cannot be set alongside a custom broker")
        else:
            commission = 0 if self._commission is None else self._commission
            slippage = 0 if self._slippage is None else self._slippage
            broker = BacktestingBroker(
                BasicFillEngine(commission, SimpleSlippageModel(slippage)),
            )

        engine = Backtester(
            clock=Clock(self._start_time, self._resolution),
            mode=self._mode,
            algo=self._algo,
            broker=broker,
            reporting_currency=self._reporting_currency,
        )
        if self._initial_cash is not None:
            engine.set_cash(self._reporting_currency, self._initial_cash)
        return engine


def run_backtest(
    config: Config,
    algo: AlgorithmCallback,
    feeds: Optional[Sequence[DataFeed]] = None,
    securities: Optional[Mapping[Symbol, Security]] = None,
) -> BacktestResult:
    """Build an engine from ``config``, attach feeds and run it.

    Without explicit ``feeds`` the file feeds listed under ``data.feeds`` are
    used. Explicit feeds register their symbols as USD equities unless
    ``securities`` says otherwise.
    """
    engine = EngineBuilder().from_config(config.backtest).with_algo(algo).build()

    if feeds is None:
        engine.add_feeds_from_config(config.data)
    else:
        for feed in feeds:
            engine.add_feed(feed)
            for symbol, _market in feed.get_symbols():
                if not engine.portfolio.is_registered(symbol):
                    engine.add_security(symbol, Security.equity())

    for symbol, details in (securities or {}).items():
        engine.add_security(symbol, details)

    return engine.run()
