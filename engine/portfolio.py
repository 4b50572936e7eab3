"""Cash and holdings ledger for backtesting."""

import logging
from typing import Any, Optional

import pandas as pd

from data.fx import ExchangeRateCache
from data.security import Currency, Security, Symbol
from engine.orders import FilledOrder, OrderOutcome, Side

logger = logging.getLogger(__name__)


class Portfolio:
    """Authoritative cash-per-currency and holding-per-symbol store.

    Mutated only through ``apply`` (plus explicit cash seeding). The fill
    engine reads it for funds checks; the broker applies outcomes to it.
    No bounds checks happen here: only validated fills are expected.
    """

    def __init__(self, reporting_currency: Currency = Currency.USD) -> None:
        self.reporting_currency = Currency(reporting_currency)

        # currency -> cash units
        self._cash: dict[Currency, Any] = {self.reporting_currency: 0}
        # symbol -> signed quantity
        self._holdings: dict[Symbol, Any] = {}
        # symbol -> registered metadata (currency, tick size)
        self._securities: dict[Symbol, Security] = {}
        # order id -> most recent FilledOrder or OrderError
        self._history: dict[str, OrderOutcome] = {}

    def apply(self, outcome: OrderOutcome) -> None:
        """Update cash and holdings for a fill and record the outcome.

        BUY:  holding += volume, cash -= price * volume + commission
        SELL: holding -= volume, cash += price * volume - commission
        A SELL with no holding entry only records history.
        """
        if isinstance(outcome, FilledOrder):
            self._apply_fill(outcome)
        self._history[outcome.id] = outcome

    def _apply_fill(self, fill: FilledOrder) -> None:
        security = self._securities.get(fill.symbol)
        currency = security.currency if security is not None else self.reporting_currency

        if fill.symbol not in self._holdings:
            if fill.side == Side.SELL:
                logger.debug("Ignoring sell fill %s for %s with no holding", fill.id, fill.symbol)
                return
            self._holdings[fill.symbol] = 0

        if fill.side == Side.BUY:
            self._holdings[fill.symbol] += fill.volume
            self._cash[currency] = self._cash.get(currency, 0) - (fill.cost + fill.commission)
        else:
            self._holdings[fill.symbol] -= fill.volume
            self._cash[currency] = self._cash.get(currency, 0) + (fill.cost - fill.commission)

    def set_cash(self, currency: Currency, amount: Any) -> None:
        self._cash[Currency(currency)] = amount

    def get_cash(self, currency: Optional[Currency] = None) -> Optional[Any]:
        """Cash in ``currency`` (reporting currency by default), None if absent."""
        if currency is None:
            currency = self.reporting_currency
        return self._cash.get(Currency(currency))

    def cash_balances(self) -> dict[Currency, Any]:
        return dict(self._cash)

    def total_cash(self, fx: ExchangeRateCache) -> Any:
        """All cash balances valued in the reporting currency.

        Raises FXConversionError if a balance has no usable rate.
        """
        total = 0
        for currency, amount in self._cash.items():
            total += fx.convert(amount, currency, self.reporting_currency)
        return total

    def get_holding(self, symbol: Symbol) -> Optional[Any]:
        return self._holdings.get(symbol)

    def holdings(self) -> dict[Symbol, Any]:
        return dict(self._holdings)

    def register_security(self, symbol: Symbol, details: Security) -> None:
        self._securities[symbol] = details

    def security_details(self, symbol: Symbol) -> Optional[Security]:
        return self._securities.get(symbol)

    def is_registered(self, symbol: Symbol) -> bool:
        return symbol in self._securities

    def get_filled_orders(self) -> dict[str, OrderOutcome]:
        """Order id -> most recent outcome."""
        return dict(self._history)

    def history_frame(self) -> pd.DataFrame:
        """Export the order history as a DataFrame, one row per order id."""
        columns = [
            "order_id", "symbol", "side", "status", "submitted", "timestamp",
            "volume", "price", "commission", "partial", "message",
        ]
        if not self._history:
            return pd.DataFrame(columns=columns)
        records = []
        for order_id, outcome in self._history.items():
            is_fill = isinstance(outcome, FilledOrder)
            records.append({
                "order_id": order_id,
                "symbol": str(outcome.symbol),
                "side": outcome.order.side.value,
                "status": outcome.status.value,
                "submitted": outcome.order.timestamp,
                "timestamp": outcome.timestamp,
                "volume": outcome.volume if is_fill else outcome.order.volume,
                "price": outcome.price if is_fill else None,
                "commission": outcome.commission if is_fill else None,
                "partial": outcome.partial if is_fill else False,
                "message": "" if is_fill else outcome.message,
            })
        return pd.DataFrame(records, columns=columns)
