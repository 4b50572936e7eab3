"""Fill engine: matches queued orders against the latest market data."""

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Optional

from data.security import Symbol
from data.types import DataPoint
from engine.orders import FilledOrder, Order, OrderError, OrderOutcome, Side
from engine.slippage import SimpleSlippageModel, SlippageModel

logger = logging.getLogger(__name__)

INSUFFICIENT_FUNDS = "Insufficient Funds"
INSUFFICIENT_HOLDINGS = "Insufficient Holdings"
NO_HOLDINGS = "No Holdings"
UNREGISTERED_SECURITY = "Unregistered Security"


class FillEngine(ABC):
    """Contract shared by fill engines: queue orders, emit outcomes."""

    @abstractmethod
    def connect_to_engine(self, clock: Any, portfolio: Any) -> None:
        """Share the simulation clock and a read view of the ledger."""

    @abstractmethod
    def connect_to_data(self, intake: deque) -> None:
        """Attach the queue the data manager republishes points into."""

    @abstractmethod
    def add_order(self, order: Order) -> None:
        """Queue an order for matching on the next cycle."""

    @abstractmethod
    def next_cycle(self) -> None:
        """Absorb new data and orders, then attempt to match open orders."""

    @abstractmethod
    def get_filled_orders(self) -> list[OrderOutcome]:
        """Drain the outcomes produced since the last call."""


class BasicFillEngine(FillEngine):
    """Fills market orders in full at the first price strictly after submission.

    Each cycle the engine keeps the most recent point per symbol, admits newly
    submitted orders, then checks every pending order in submission order.
    An order only fills against a point whose time is strictly greater than
    the order's timestamp. Commission is a flat amount per fill.
    """

    def __init__(self, commission: Any = 0, slippage_model: Optional[SlippageModel] = None) -> None:
        self.commission = commission
        self.slippage_model = slippage_model if slippage_model is not None else SimpleSlippageModel()

        self._clock: Optional[Any] = None
        self._portfolio: Optional[Any] = None
        self._data_intake: Optional[deque] = None
        self._order_intake: deque[Order] = deque()
        # id -> order; dict order is submission order
        self._pending: dict[str, Order] = {}
        self._last_points: dict[Symbol, DataPoint] = {}
        self._outcomes: deque[OrderOutcome] = deque()

    def connect_to_engine(self, clock: Any, portfolio: Any) -> None:
        self._clock = clock
        self._portfolio = portfolio

    def connect_to_data(self, intake: deque) -> None:
        self._data_intake = intake

    def add_order(self, order: Order) -> None:
        self._order_intake.append(order)

    def next_cycle(self) -> None:
        if self._data_intake is not None:
            while self._data_intake:
                point = self._data_intake.popleft()
                self._last_points[point.symbol] = point

        while self._order_intake:
            order = self._order_intake.popleft()
            self._pending[order.id] = order

        for order_id, order in list(self._pending.items()):
            outcome = self.check_fill(order)
            if outcome is None:
                continue
            del self._pending[order_id]
            self._outcomes.append(outcome)

    def check_fill(self, order: Order) -> Optional[OrderOutcome]:
        """Outcome for ``order`` if it can be decided now, else None."""
        point = self._last_points.get(order.symbol)
        if point is None or point.time <= order.timestamp:
            return None
        return self.fill_market_order(order, point)

    def fill_market_order(self, order: Order, point: DataPoint) -> OrderOutcome:
        price = self.slippage_model.get_slippage_approximation(point, order)
        commission = self.get_commission(order)

        error = self.check_funds(order, price)
        if error is not None:
            logger.debug("Rejected order %s on %s: %s", order.id, order.symbol, error)
            return OrderError(order, self._clock.now(), error)

        logger.debug(
            "Filled order %s: %s %s %s @ %s",
            order.id, order.side.value, order.volume, order.symbol, price,
        )
        return FilledOrder(order, self._clock.now(), order.volume, price, commission, False)

    def check_funds(self, order: Order, price: Any) -> Optional[str]:
        """Rejection message, or None when the ledger can cover the order.

        A buy needs cash >= price * volume in the security's currency;
        commission is not part of the check.
        """
        details = self._portfolio.security_details(order.symbol)
        if details is None:
            return UNREGISTERED_SECURITY

        if order.side == Side.BUY:
            cash = self._portfolio.get_cash(details.currency)
            if cash is None or cash < price * order.volume:
                return INSUFFICIENT_FUNDS
            return None

        holding = self._portfolio.get_holding(order.symbol)
        if holding is None:
            return NO_HOLDINGS
        if holding < order.volume:
            return INSUFFICIENT_HOLDINGS
        return None

    def get_commission(self, order: Order) -> Any:
        return self.commission

    def get_filled_orders(self) -> list[OrderOutcome]:
        outcomes = list(self._outcomes)
        self._outcomes.clear()
        return outcomes

    @property
    def pending_count(self) -> int:
        return len(self._pending) + len(self._order_intake)
