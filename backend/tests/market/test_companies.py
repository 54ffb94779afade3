"""Tests for the symbol universe helpers."""

from stoxly.market.companies import (
    DEFAULT_SYMBOLS,
    TOP_INDICES,
    company_name,
    match_symbols,
)


class TestCompanies:
    """Name lookup and symbol matching."""

    def test_company_name(self):
        """Test names for companies and index ETFs, falling back to the symbol."""
        assert company_name("aapl") == "Apple Inc."
        assert company_name("QQQ") == "Invesco QQQ Trust"
        assert company_name("ZZZZ") == "ZZZZ"

    def test_indices_not_on_home_page(self):
        """Test that the home page list holds companies only."""
        assert not set(TOP_INDICES) & set(DEFAULT_SYMBOLS)

    def test_match_by_ticker_and_name(self):
        """Test case-insensitive matching on both ticker and name."""
        assert match_symbols("msft") == ["MSFT"]
        assert match_symbols("SPDR") == ["SPY", "DIA"]
        assert match_symbols("   ") == []

    def test_custom_universe(self):
        """Test matching within a caller-supplied universe."""
        assert match_symbols("foo", {"FOO": "Foo Corp", "BAR": "Bar Inc"}) == ["FOO"]
