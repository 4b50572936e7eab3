"""Unit tests for data.slice module."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from data.security import Symbol
from data.slice import Slice
from tests.conftest import make_bar_point, make_tick_point


class TestSlice:
    def test_empty(self):
        s = Slice(1000)
        assert not s.has_data()
        assert len(s) == 0
        assert s.get_bar("AAPL") is None

    def test_add_datapoint_bar(self, aapl_points, aapl):
        s = Slice(aapl_points[0].time)
        s.add_datapoint(aapl_points[0])
        assert s.has_data()
        assert s.get_bar(aapl).open == pytest.approx(174.570007)
        assert s["AAPL"] is s.get_bar(aapl)
        assert "AAPL" in s
        assert list(s) == [aapl]

    def test_ticks_are_not_bars(self):
        s = Slice(1000)
        s.add_datapoint(make_tick_point(Symbol.fx("EUR", "USD"), 1000, 1.1))
        assert not s.has_data()

    def test_later_bar_replaces_earlier(self, aapl):
        s = Slice(10_000)
        s.add_datapoint(make_bar_point(aapl, 0, 1.0))
        s.add_datapoint(make_bar_point(aapl, 0, 2.0))
        assert s[aapl].open == 2.0

    def test_missing_symbol_raises_key_error(self):
        with pytest.raises(KeyError):
            Slice(1000)["MSFT"]

    def test_sealed_slice_rejects_bars(self, aapl_points, aapl):
        s = Slice(1000).seal()
        with pytest.raises(RuntimeError):
            s.add_bar(aapl, aapl_points[0].data)

    def test_ordering_by_end_time(self):
        a, b = Slice(1000), Slice(2000)
        assert a < b
        assert a == Slice(1000)
        assert sorted([b, a]) == [a, b]

    def test_to_dataframe(self, aapl_points):
        s = Slice(aapl_points[0].time)
        s.add_datapoint(aapl_points[0])
        df = s.to_dataframe()
        assert len(df) == 1
        assert df.iloc[0]["symbol"] == "AAPL"
        assert df.iloc[0]["close"] == pytest.approx(178.440002)

    def test_to_dataframe_empty(self):
        df = Slice(0).to_dataframe()
        assert df.empty
        assert "symbol" in df.columns
