"""Currency exchange rates with single-hop triangulation."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from data.security import Currency
from errors import FXConversionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeRate:
    """``rate`` units of ``target`` per one unit of ``source``."""

    source: Currency
    target: Currency
    rate: Any

    def exchange(self, amount: Any) -> Any:
        return self.rate * amount

    def inverse(self) -> "ExchangeRate":
        return ExchangeRate(self.target, self.source, 1 / self.rate)

    @staticmethod
    def chain(r1: "ExchangeRate", r2: "ExchangeRate") -> "ExchangeRate":
        """Combine two rates that share a currency into a third.

        - same source:           r1.target -> r2.target at r2 / r1
        - r1.source == r2.target: r1.target -> r2.source at 1 / (r1 * r2)
        - r1.target == r2.source: r1.source -> r2.target at r1 * r2
        - same target:           r1.source -> r2.source at r1 / r2
        """
        if r1.source == r2.source:
            return ExchangeRate(r1.target, r2.target, r2.rate / r1.rate)
        if r1.source == r2.target:
            return ExchangeRate(r1.target, r2.source, 1 / (r1.rate * r2.rate))
        if r1.target == r2.source:
            return ExchangeRate(r1.source, r2.target, r1.rate * r2.rate)
        if r1.target == r2.target:
            return ExchangeRate(r1.source, r2.source, r1.rate / r2.rate)
        raise FXConversionError(
            f"exchange rate not chainable: {r1.source}/{r1.target} and {r2.source}/{r2.target}"
        )


class ExchangeRateCache:
    """Latest observed rate per directed currency pair.

    ``lookup`` resolves identity, direct and depth-one triangulated rates.
    Derived rates are computed on demand and never stored. Chains longer
    than one intermediary are not attempted.
    """

    def __init__(self) -> None:
        self._rates: dict[tuple[Currency, Currency], ExchangeRate] = {}

    def update(self, source: Currency, target: Currency, rate: Any) -> None:
        """Upsert a direct rate (last write wins)."""
        source, target = Currency(source), Currency(target)
        self._rates[(source, target)] = ExchangeRate(source, target, rate)

    def get_rate(self, source: Currency, target: Currency) -> Optional[ExchangeRate]:
        return self._rates.get((Currency(source), Currency(target)))

    def contains(self, source: Currency, target: Currency) -> bool:
        return (Currency(source), Currency(target)) in self._rates

    def lookup(self, source: Currency, target: Currency) -> Optional[ExchangeRate]:
        """Resolve a rate, or None when no single-hop chain exists."""
        source, target = Currency(source), Currency(target)
        if source == target:
            return ExchangeRate(source, target, 1)

        direct = self._rates.get((source, target))
        if direct is not None:
            return direct

        for head in self._rates_touching(source):
            other = head.target if head.source == source else head.source
            if other == target:
                # Only the reverse pair is known.
                return head.inverse()
            for tail in self._rates_touching(other):
                if target not in (tail.source, tail.target):
                    continue
                chained = ExchangeRate.chain(head, tail)
                if chained.source == source and chained.target == target:
                    return chained
                if chained.source == target and chained.target == source:
                    return chained.inverse()
        logger.debug("No exchange rate path for %s -> %s", source.value, target.value)
        return None

    def convert(self, amount: Any, source: Currency, target: Currency) -> Any:
        """Convert ``amount`` of ``source`` into ``target``."""
        rate = self.lookup(source, target)
        if rate is None:
            raise FXConversionError(f"No exchange rate available for {source} -> {target}")
        return rate.exchange(amount)

    def _rates_touching(self, currency: Currency) -> list[ExchangeRate]:
        return [r for r in self._rates.values() if currency in (r.source, r.target)]

    def __len__(self) -> int:
        return len(self._rates)
