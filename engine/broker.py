"""Backtesting broker: routes orders to the fill engine and outcomes to the ledger."""

import logging
from collections import deque
from types import MappingProxyType
from typing import Any, Mapping, Optional

from engine.events import EventLog, EventType
from engine.fill import BasicFillEngine, FillEngine
from engine.orders import FilledOrder, Order, OrderOutcome
from errors import ConfigError

logger = logging.getLogger(__name__)


class BacktestingBroker:
    """Keeps the open-order set and applies fill outcomes to the portfolio."""

    def __init__(self, fill_engine: Optional[FillEngine] = None, event_log: Optional[EventLog] = None) -> None:
        self.fill_engine = fill_engine if fill_engine is not None else BasicFillEngine()
        self.event_log = event_log
        self._clock: Optional[Any] = None
        self._portfolio: Optional[Any] = None
        self._open_orders: dict[str, Order] = {}

    def connect(self, clock: Any, portfolio: Any) -> None:
        """Attach the clock and portfolio; the fill engine gets read access."""
        self._clock = clock
        self._portfolio = portfolio
        self.fill_engine.connect_to_engine(clock, portfolio)

    def connect_to_data(self, intake: deque) -> None:
        self.fill_engine.connect_to_data(intake)

    def submit_order(self, order: Order) -> None:
        """Fire and forget: rejections only show up in the ledger history."""
        self._open_orders[order.id] = order
        self.fill_engine.add_order(order)
        if self.event_log is not None:
            self.event_log.emit(
                EventType.ORDER_SUBMITTED, order.timestamp, order.id,
                symbol=str(order.symbol), side=order.side.value, volume=order.volume,
            )

    def next_cycle(self) -> list[OrderOutcome]:
        """Match open orders and apply every outcome. Returns the outcomes."""
        if self._portfolio is None:
            raise ConfigError("Broker has no portfolio; call connect() before next_cycle()")

        self.fill_engine.next_cycle()
        outcomes = self.fill_engine.get_filled_orders()
        for outcome in outcomes:
            self._portfolio.apply(outcome)
            self._open_orders.pop(outcome.id, None)
            self._record(outcome)
        return outcomes

    def _record(self, outcome: OrderOutcome) -> None:
        if self.event_log is None:
            return
        if isinstance(outcome, FilledOrder):
            self.event_log.emit(
                EventType.ORDER_FILLED, outcome.timestamp, outcome.id,
                symbol=str(outcome.symbol), side=outcome.side.value,
                volume=outcome.volume, price=outcome.price, commission=outcome.commission,
            )
        else:
            logger.info("Order %s rejected: %s", outcome.id, outcome.message)
            self.event_log.emit(
                EventType.ORDER_REJECTED, outcome.timestamp, outcome.id,
                symbol=str(outcome.symbol), reason=outcome.message,
            )

    @property
    def open_orders(self) -> Mapping[str, Order]:
        return MappingProxyType(self._open_orders)
