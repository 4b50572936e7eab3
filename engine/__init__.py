"""Backtest engine: clock, order execution, broker, ledger and orchestration."""

from engine.backtester import run_backtest, Backtester, BacktestResult, EngineBuilder, EngineHandle
from engine.broker import BacktestingBroker
from engine.clock import Clock
from engine.fill import FillEngine, BasicFillEngine
from engine.orders import MarketOrder, FilledOrder, OrderError, OrderStatus, Side
from engine.portfolio import Portfolio
from engine.slippage import SlippageModel, SimpleSlippageModel
from engine.events import EventLog, EventType

__all__ = [
    "run_backtest",
    "Backtester",
    "BacktestResult",
    "EngineBuilder",
    "EngineHandle",
    "BacktestingBroker",
    "Clock",
    "FillEngine",
    "BasicFillEngine",
    "MarketOrder",
    "FilledOrder",
    "OrderError",
    "OrderStatus",
    "Side",
    "Portfolio",
    "SlippageModel",
    "SimpleSlippageModel",
    "EventLog",
    "EventType",
]
