"""Unit tests for engine.portfolio module."""

import sys
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from data.fx import ExchangeRateCache
from data.security import Currency, Security, Symbol
from engine.orders import FilledOrder, MarketOrder, OrderError, Side
from engine.portfolio import Portfolio
from errors import FXConversionError

# ---------------------------------------------------------------------------
# Shared constants
# ---------------------------------------------------------------------------
AAPL = Symbol.equity("AAPL")
SAP = Symbol.equity("SAP")
TIMESTAMP = 1649116800000


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _fill(
    side: Side = Side.BUY,
    volume: float = 10,
    price: float = 100.0,
    commission: float = 1.0,
    order_id: str = "1",
    symbol: Symbol = AAPL,
) -> FilledOrder:
    order = MarketOrder(order_id, symbol, TIMESTAMP - 1, volume, side)
    return FilledOrder(order, TIMESTAMP, volume, price, commission)


def _make_portfolio(cash: float = 10_000.0) -> Portfolio:
    portfolio = Portfolio(Currency.USD)
    portfolio.set_cash(Currency.USD, cash)
    portfolio.register_security(AAPL, Security.equity("USD"))
    return portfolio


# ---------------------------------------------------------------------------
# Cash and registration
# ---------------------------------------------------------------------------
class TestCashAndSecurities:
    def test_reporting_currency_starts_at_zero(self):
        assert Portfolio("EUR").get_cash() == 0
        assert Portfolio("EUR").get_cash(Currency.EUR) == 0

    def test_missing_currency_is_none(self):
        assert Portfolio().get_cash(Currency.JPY) is None

    def test_set_cash_accepts_strings(self):
        portfolio = Portfolio()
        portfolio.set_cash("GBP", 50.0)
        assert portfolio.get_cash(Currency.GBP) == 50.0
        assert portfolio.cash_balances() == {Currency.USD: 0, Currency.GBP: 50.0}

    def test_register_security(self):
        portfolio = _make_portfolio()
        assert portfolio.is_registered(AAPL)
        assert not portfolio.is_registered(SAP)
        assert portfolio.security_details(AAPL).currency == Currency.USD
        assert portfolio.security_details(SAP) is None


# ---------------------------------------------------------------------------
# apply
# ---------------------------------------------------------------------------
class TestApply:
    def test_buy(self):
        portfolio = _make_portfolio()
        portfolio.apply(_fill(Side.BUY, volume=10, price=100.0, commission=1.0))
        assert portfolio.get_holding(AAPL) == 10
        assert portfolio.get_cash() == pytest.approx(10_000.0 - 1000.0 - 1.0)

    def test_sell(self):
        portfolio = _make_portfolio()
        portfolio.apply(_fill(Side.BUY, volume=10, price=100.0, commission=1.0, order_id="1"))
        portfolio.apply(_fill(Side.SELL, volume=4, price=110.0, commission=1.0, order_id="2"))
        assert portfolio.get_holding(AAPL) == 6
        assert portfolio.get_cash() == pytest.approx(10_000.0 - 1001.0 + 440.0 - 1.0)

    def test_sell_to_zero_keeps_entry(self):
        portfolio = _make_portfolio()
        portfolio.apply(_fill(Side.BUY, volume=5, order_id="1"))
        portfolio.apply(_fill(Side.SELL, volume=5, order_id="2"))
        assert portfolio.get_holding(AAPL) == 0

    def test_sell_without_holding_only_records_history(self):
        portfolio = _make_portfolio()
        portfolio.apply(_fill(Side.SELL, volume=5))
        assert portfolio.get_holding(AAPL) is None
        assert portfolio.get_cash() == 10_000.0
        assert "1" in portfolio.get_filled_orders()

    def test_error_only_records_history(self):
        portfolio = _make_portfolio()
        order = MarketOrder("9", AAPL, TIMESTAMP - 1, 10, Side.BUY)
        portfolio.apply(OrderError(order, TIMESTAMP, "Insufficient Funds"))
        assert portfolio.get_cash() == 10_000.0
        assert portfolio.get_holding(AAPL) is None
        assert portfolio.get_filled_orders()["9"].message == "Insufficient Funds"

    def test_history_idempotent_on_id(self):
        portfolio = _make_portfolio()
        order = MarketOrder("1", AAPL, TIMESTAMP - 1, 10, Side.BUY)
        portfolio.apply(OrderError(order, TIMESTAMP, "Insufficient Funds"))
        portfolio.apply(_fill(order_id="1"))
        history = portfolio.get_filled_orders()
        assert len(history) == 1
        assert isinstance(history["1"], FilledOrder)

    def test_foreign_denomination(self):
        portfolio = _make_portfolio()
        portfolio.register_security(SAP, Security.equity("EUR"))
        portfolio.set_cash(Currency.EUR, 5000.0)
        portfolio.apply(_fill(volume=10, price=120.0, commission=1.0, symbol=SAP))
        assert portfolio.get_cash(Currency.EUR) == pytest.approx(5000.0 - 1201.0)
        assert portfolio.get_cash(Currency.USD) == 10_000.0

    def test_sell_creates_missing_currency_entry(self):
        portfolio = _make_portfolio()
        portfolio.register_security(SAP, Security.equity("EUR"))
        portfolio.apply(_fill(Side.BUY, volume=1, price=0.0, commission=0.0, order_id="1", symbol=SAP))
        portfolio.apply(_fill(Side.SELL, volume=1, price=50.0, commission=1.0, order_id="2", symbol=SAP))
        assert portfolio.get_cash(Currency.EUR) == pytest.approx(49.0)

    def test_decimal_numbers(self):
        portfolio = Portfolio()
        portfolio.set_cash("USD", Decimal("1000.00"))
        portfolio.register_security(AAPL, Security.equity())
        portfolio.apply(_fill(volume=Decimal("3"), price=Decimal("10.10"), commission=Decimal("0.50")))
        assert portfolio.get_cash() == Decimal("969.20")
        assert portfolio.get_holding(AAPL) == Decimal("3")


# ---------------------------------------------------------------------------
# Funds conservation
# ---------------------------------------------------------------------------
class TestFundsConservation:
    @pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
    def test_cash_and_holding_move_symmetrically(self, side):
        portfolio = _make_portfolio()
        portfolio.apply(_fill(Side.BUY, volume=20, price=50.0, commission=0.0, order_id="seed"))
        cash_before = portfolio.get_cash()
        holding_before = portfolio.get_holding(AAPL)

        fill = _fill(side, volume=7, price=101.5, commission=2.0, order_id="x")
        portfolio.apply(fill)

        sign = 1 if side is Side.BUY else -1
        expected_cash = cash_before - sign * fill.cost - fill.commission
        assert portfolio.get_cash() == pytest.approx(expected_cash)
        assert portfolio.get_holding(AAPL) == holding_before + sign * 7


# ---------------------------------------------------------------------------
# Valuation and export
# ---------------------------------------------------------------------------
class TestTotalCash:
    def test_converts_foreign_cash(self):
        portfolio = _make_portfolio(cash=1000.0)
        portfolio.set_cash(Currency.EUR, 100.0)
        fx = ExchangeRateCache()
        fx.update(Currency.EUR, Currency.USD, 1.25)
        assert portfolio.total_cash(fx) == pytest.approx(1125.0)

    def test_missing_rate_raises(self):
        portfolio = _make_portfolio()
        portfolio.set_cash(Currency.JPY, 100.0)
        with pytest.raises(FXConversionError):
            portfolio.total_cash(ExchangeRateCache())


class TestHistoryFrame:
    def test_rows(self):
        portfolio = _make_portfolio(cash=0.0)
        order = MarketOrder("2", AAPL, TIMESTAMP - 1, 10, Side.BUY)
        portfolio.apply(_fill(order_id="1"))
        portfolio.apply(OrderError(order, TIMESTAMP, "Insufficient Funds"))
        df = portfolio.history_frame()
        assert list(df["order_id"]) == ["1", "2"]
        assert list(df["status"]) == ["FILLED", "REJECTED"]
        assert df.iloc[1]["message"] == "Insufficient Funds"
        assert df.iloc[0]["price"] == pytest.approx(100.0)

    def test_empty(self):
        df = Portfolio().history_frame()
        assert df.empty
        assert "order_id" in df.columns
