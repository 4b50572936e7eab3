"""Strategy callback contract."""

from abc import ABC, abstractmethod
from typing import Any, Callable

from data.slice import Slice


class Algorithm(ABC):
    """Base class for strategies driven by the backtester.

    ``on_data`` runs once per cycle whose slice carries data. Orders placed
    through ``engine`` are first eligible to fill on the following cycle.
    """

    @abstractmethod
    def on_data(self, data: Slice, engine: Any) -> None:
        ...

    def __call__(self, data: Slice, engine: Any) -> None:
        self.on_data(data, engine)


class FunctionAlgorithm(Algorithm):
    """Wrap a plain ``fn(slice, engine)`` callable."""

    def __init__(self, fn: Callable[[Slice, Any], None]) -> None:
        self._fn = fn

    def on_data(self, data: Slice, engine: Any) -> None:
        self._fn(data, engine)

    def __repr__(self) -> str:
        return f"FunctionAlgorithm({getattr(self._fn, '__name__', self._fn)!r})"
