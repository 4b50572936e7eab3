"""Order types and the two terminal order outcomes."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from data.security import Symbol


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    FILLED = "FILLED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class MarketOrder:
    """Buy or sell ``volume`` units at the next eligible price."""

    id: str
    symbol: Symbol
    timestamp: int  # submission time, ms
    volume: Any
    side: Side


# Only market orders are modelled; new order types join this alias.
Order = MarketOrder


@dataclass(frozen=True)
class FilledOrder:
    """Successful execution of an order."""

    order: Order
    timestamp: int
    volume: Any
    price: Any
    commission: Any
    partial: bool = False

    @property
    def id(self) -> str:
        return self.order.id

    @property
    def symbol(self) -> Symbol:
        return self.order.symbol

    @property
    def side(self) -> Side:
        return self.order.side

    @property
    def cost(self) -> Any:
        return self.price * self.volume

    @property
    def status(self) -> OrderStatus:
        return OrderStatus.FILLED


@dataclass(frozen=True)
class OrderError:
    """Rejected execution attempt. Recorded in the ledger, never raised."""

    order: Order
    timestamp: int
    message: str

    @property
    def id(self) -> str:
        return self.order.id

    @property
    def symbol(self) -> Symbol:
        return self.order.symbol

    @property
    def status(self) -> OrderStatus:
        return OrderStatus.REJECTED

    def __str__(self) -> str:
        return self.message


OrderOutcome = Union[FilledOrder, OrderError]
