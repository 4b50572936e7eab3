"""Instrument identifiers and registered security metadata."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Currency(str, Enum):
    """ISO-4217 currency codes.

    Members compare equal to (and hash like) their plain string code, so
    ``"USD"`` and ``Currency.USD`` are interchangeable as dict keys.
    """

    AUD = "AUD"
    BRL = "BRL"
    CAD = "CAD"
    CHF = "CHF"
    CNY = "CNY"
    CZK = "CZK"
    DKK = "DKK"
    EUR = "EUR"
    GBP = "GBP"
    HKD = "HKD"
    HUF = "HUF"
    IDR = "IDR"
    ILS = "ILS"
    INR = "INR"
    JPY = "JPY"
    KRW = "KRW"
    MXN = "MXN"
    NOK = "NOK"
    NZD = "NZD"
    PLN = "PLN"
    RUB = "RUB"
    SEK = "SEK"
    SGD = "SGD"
    THB = "THB"
    TRY = "TRY"
    TWD = "TWD"
    USD = "USD"
    ZAR = "ZAR"


class SecurityType(str, Enum):
    EQUITY = "EQUITY"
    FX = "FX"


@dataclass(frozen=True)
class Symbol:
    """Hashable instrument identifier.

    FX symbols carry the base and quote currency so that spot observations
    can be routed into the exchange rate cache.
    """

    ticker: str
    security_type: SecurityType = SecurityType.EQUITY
    base: Optional[Currency] = None
    quote: Optional[Currency] = None

    @classmethod
    def equity(cls, ticker: str) -> "Symbol":
        return cls(ticker=ticker, security_type=SecurityType.EQUITY)

    @classmethod
    def fx(cls, base: str, quote: str) -> "Symbol":
        base_ccy, quote_ccy = Currency(base), Currency(quote)
        return cls(
            ticker=f"{base_ccy.value}{quote_ccy.value}",
            security_type=SecurityType.FX,
            base=base_ccy,
            quote=quote_ccy,
        )

    @property
    def is_fx(self) -> bool:
        return self.security_type == SecurityType.FX

    def __str__(self) -> str:
        return self.ticker


@dataclass(frozen=True)
class Security:
    """Metadata registered with the portfolio for each tradable symbol."""

    currency: Currency
    minimum_price_variation: float = 0.01
    security_type: SecurityType = SecurityType.EQUITY

    @classmethod
    def equity(cls, currency: str = "USD", minimum_price_variation: float = 0.01) -> "Security":
        return cls(
            currency=Currency(currency),
            minimum_price_variation=minimum_price_variation,
            security_type=SecurityType.EQUITY,
        )
