"""Tests for the market data factory."""

import pytest

from stoxly.config import Settings
from stoxly.market.cache import ExpiringCache
from stoxly.market.factory import build_market_data, create_market_data
from stoxly.market.hub import ConnectionState
from stoxly.market.rest_client import HttpQuoteProvider
from stoxly.market.simulator import SimulatedQuoteProvider


@pytest.mark.asyncio
class TestFactory:
    """Tests for create_market_data."""

    async def test_creates_simulator_without_api_url(self):
        """Test that the simulator is used when no API URL is configured."""
        market = create_market_data(Settings())
        assert isinstance(market.provider, SimulatedQuoteProvider)
        assert market.fetcher.cache is market.cache
        await market.aclose()

    async def test_creates_http_provider_with_api_url(self):
        """Test that an API URL selects the HTTP provider."""
        market = create_market_data(Settings(STOXLY_API_URL="https://quotes.example.com/v1", STOXLY_API_TOKEN="t0k"))
        assert isinstance(market.provider, HttpQuoteProvider)
        assert market.hub.state is ConnectionState.CLOSED
        await market.aclose()

    async def test_simulated_layer_serves_quotes(self):
        """Test the assembled simulator layer end to end on the pull side."""
        market = create_market_data(Settings())
        quote = await market.fetcher.get_quote("AAPL")
        assert quote.symbol == "AAPL"
        assert market.cache.get("quote_AAPL") is quote
        await market.aclose()

    async def test_build_shares_cache(self, provider, connector):
        """Test that the hub writes into the same cache the fetcher reads."""
        cache = ExpiringCache()
        market = build_market_data(provider, connector, Settings(STOXLY_QUOTE_TTL=5), cache=cache)
        assert market.cache is cache
        assert market.fetcher.cache is cache
        await market.aclose()
        assert provider.closed

    async def test_empty_injected_cache_kept(self, provider, connector, clock):
        """Test that an injected cache is used even while it is still empty."""
        cache = ExpiringCache(clock=clock)
        assert len(cache) == 0
        market = build_market_data(provider, connector, Settings(), cache=cache)
        assert market.cache is cache
        assert market.fetcher.cache is cache
        await market.aclose()
