"""Exception hierarchy for the backtesting core.

Order rejections are not exceptions: they are recorded as
``engine.orders.OrderError`` outcomes in the portfolio history.
"""


class BacktestError(Exception):
    """Base class for all errors raised by the engine."""


class ConfigError(BacktestError):
    """Incomplete or invalid engine configuration. Raised at build time."""


class FeedError(BacktestError):
    """A data feed failed to connect or to deliver data. Fatal to the run."""


class FXConversionError(BacktestError):
    """No direct or depth-one triangulated rate exists for a currency pair."""


class LedgerError(BacktestError):
    """Reserved for ledger failures. The ledger currently never raises."""
