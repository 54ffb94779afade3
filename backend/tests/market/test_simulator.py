"""Tests for the GBM simulator and synthetic chart history."""

import math

import pytest

from stoxly.market.normalizer import normalize_quote
from stoxly.market.seed_prices import SEED_PRICES
from stoxly.market.simulator import CHART_RANGES, GBMSimulator, synthetic_history


class TestGBMSimulator:
    """Unit tests for the GBM price simulator."""

    def test_step_returns_all_symbols(self):
        """Test that step() returns prices for all symbols."""
        sim = GBMSimulator(["AAPL", "GOOGL"], seed=1)
        result = sim.step()
        assert set(result.keys()) == {"AAPL", "GOOGL"}

    def test_prices_are_positive(self):
        """GBM prices can never go negative (exp() is always positive)."""
        sim = GBMSimulator(["AAPL", "TSLA"], seed=7)
        for _ in range(10_000):
            prices = sim.step()
            assert prices["AAPL"] > 0
            assert prices["TSLA"] > 0

    def test_initial_prices_match_seeds(self):
        """Test that initial prices match seed prices."""
        sim = GBMSimulator(["AAPL"])
        assert sim.price("AAPL") == SEED_PRICES["AAPL"]
        assert sim.price("NOPE") is None

    def test_duplicates_collapsed(self):
        """Test that repeated symbols are simulated once."""
        sim = GBMSimulator(["AAPL", "AAPL", "MSFT"])
        assert sim.symbols == ["AAPL", "MSFT"]

    def test_empty_step(self):
        """Test stepping with no symbols."""
        sim = GBMSimulator([])
        assert sim.step() == {}

    def test_seeded_runs_repeat(self):
        """Test that the same seed gives the same path."""
        a = GBMSimulator(["AAPL", "JPM"], seed=42)
        b = GBMSimulator(["AAPL", "JPM"], seed=42)
        for _ in range(50):
            assert a.step() == b.step()

    def test_prices_change_over_time(self):
        """After many steps, prices should have drifted from their seeds."""
        sim = GBMSimulator(["AAPL"], seed=3)
        for _ in range(1000):
            sim.step()
        assert sim.price("AAPL") != SEED_PRICES["AAPL"]

    def test_payload_normalizes(self):
        """Test that the emitted payload is a valid parallel-array quote."""
        sim = GBMSimulator(["NVDA"], seed=5)
        sim.step()
        quote = normalize_quote(sim.payload("NVDA", now=1_700_000_000))
        assert quote.symbol == "NVDA"
        assert quote.price == round(sim.price("NVDA"), 2)
        assert quote.bid < quote.ask
        assert quote.bid_size > 0
        assert quote.volume > 0
        assert quote.updated_at == 1_700_000_000
        assert math.isfinite(quote.change_percent)


class TestSyntheticHistory:
    """Made-up chart data for the details page."""

    def test_ends_at_price(self):
        """Test that the series finishes exactly at the current price."""
        points = synthetic_history(187.32, 30, end=1_700_000_000, seed=1)
        assert points[-1].price == 187.32
        assert points[-1].timestamp == 1_700_000_000

    @pytest.mark.parametrize("period,expected", [("1D", 8), ("1W", 7), ("1M", 30), ("1Y", 365)])
    def test_point_counts(self, period, expected):
        """Test how many points each named range produces."""
        assert len(synthetic_history(100.0, CHART_RANGES[period], seed=2)) == expected

    def test_daily_spacing(self):
        """Test that daily points are one day apart and ascending."""
        points = synthetic_history(50.0, 7, end=1_000_000, seed=3)
        gaps = {b.timestamp - a.timestamp for a, b in zip(points, points[1:])}
        assert gaps == {86400.0}

    def test_hourly_for_one_day(self):
        """Test that a one-day range is hourly."""
        points = synthetic_history(50.0, 1, end=1_000_000, seed=3)
        assert points[1].timestamp - points[0].timestamp == 3600.0

    def test_prices_positive(self):
        """Test that history never goes negative."""
        points = synthetic_history(5.0, CHART_RANGES["5Y"], sigma=0.9, seed=4)
        assert all(p.price >= 0 for p in points)
