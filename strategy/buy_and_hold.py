"""Reference strategy: buy a fixed volume once and hold it."""

import logging
from typing import Any, Optional

from data.security import Symbol
from data.slice import Slice
from engine.orders import Side
from strategy.base import Algorithm

logger = logging.getLogger(__name__)


class BuyAndHold(Algorithm):
    """Submit a single market buy the first time ``symbol`` shows up in a slice."""

    def __init__(self, symbol: Symbol, volume: Any) -> None:
        self.symbol = symbol
        self.volume = volume
        self.order_id: Optional[str] = None

    def on_data(self, data: Slice, engine: Any) -> None:
        if self.order_id is not None or self.symbol not in data:
            return
        self.order_id = engine.submit_market_order(self.symbol, self.volume, Side.BUY)
        logger.info("Submitted buy of %s %s at %d (order %s)", self.volume, self.symbol, engine.time, self.order_id)
