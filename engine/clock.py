"""Discrete simulation clock shared by every component of a run."""

import pandas as pd

from data.types import Resolution, RunMode, TimeLike, to_millis


class Clock:
    """Monotonic millisecond cursor advanced once per cycle.

    Only the orchestrator calls ``advance``; every other component reads
    ``now`` and ``period_start``. The first advance floors the start time to
    a resolution boundary before stepping, so a clock started at 1050 ms
    with SECOND resolution reads 2000 ms after one advance.
    """

    def __init__(self, time: TimeLike, resolution: Resolution) -> None:
        self._time: int = to_millis(time)
        self._resolution = Resolution.parse(resolution)
        self._is_quantized: bool = False

    @property
    def resolution(self) -> Resolution:
        return self._resolution

    @property
    def step(self) -> int:
        return self._resolution.step

    def now(self) -> int:
        return self._time

    def period_start(self) -> int:
        """Exclusive lower bound of the current interval."""
        return self._time - self.step

    def now_timestamp(self) -> pd.Timestamp:
        return pd.Timestamp(self._time, unit="ms", tz="UTC")

    def advance(self, mode: RunMode = RunMode.BACKTEST) -> int:
        """Move forward one step. Only BACKTEST mode moves the clock."""
        if mode != RunMode.BACKTEST:
            return self._time
        if not self._is_quantized:
            self._quantize()
        self._time += self.step
        return self._time

    def _quantize(self) -> None:
        self._time -= self._time % self.step
        self._is_quantized = True

    def __repr__(self) -> str:
        return f"Clock(time={self._time}, resolution={self._resolution.name})"
