"""Slippage models: turn a reference price into an execution price."""

from abc import ABC, abstractmethod
from typing import Any

from data.types import DataPoint, TradeBar
from engine.orders import Order, Side


def best_ask_price(point: DataPoint) -> Any:
    """Bar open (bars carry no quotes) or the tick price."""
    if isinstance(point.data, TradeBar):
        return point.data.open
    return point.data.price


def best_bid_price(point: DataPoint) -> Any:
    if isinstance(point.data, TradeBar):
        return point.data.open
    return point.data.price


def apply_slippage(price: Any, side: Side, slippage: Any) -> Any:
    """Apply slippage to a fill price.

    Slippage always works against the trader:
    - BUY:  price * (1 + slippage) -- buy higher
    - SELL: price * (1 - slippage) -- sell lower
    """
    if side == Side.BUY:
        return price * (1 + slippage)
    return price * (1 - slippage)


class SlippageModel(ABC):
    @abstractmethod
    def get_slippage_approximation(self, point: DataPoint, order: Order) -> Any:
        """Execution price for ``order`` against ``point``."""


class SimpleSlippageModel(SlippageModel):
    """Fixed fractional slippage on the best ask (buys) or best bid (sells)."""

    def __init__(self, slippage: Any = 0) -> None:
        self.slippage = slippage

    def get_slippage_approximation(self, point: DataPoint, order: Order) -> Any:
        if order.side == Side.BUY:
            return apply_slippage(best_ask_price(point), Side.BUY, self.slippage)
        return apply_slippage(best_bid_price(point), Side.SELL, self.slippage)

    def __repr__(self) -> str:
        return f"SimpleSlippageModel(slippage={self.slippage})"
