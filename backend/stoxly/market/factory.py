"""Factory wiring provider, cache, fetcher and hub together."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import Settings
from .cache import ExpiringCache
from .errors import UpstreamError
from .fetcher import QuoteFetcher
from .hub import SubscriptionHub
from .interface import QuoteProvider
from .retry import RetryExecutor
from .transport import Connector, derive_stream_url, websocket_connector

logger = logging.getLogger(__name__)


@dataclass
class MarketData:
    """Everything the app needs from the market layer, sharing one cache."""

    provider: QuoteProvider
    cache: ExpiringCache
    fetcher: QuoteFetcher
    hub: SubscriptionHub

    async def aclose(self) -> None:
        await self.hub.unsubscribe_all()
        await self.provider.aclose()
        logger.info("Market data layer closed")


def build_market_data(
    provider: QuoteProvider,
    connect: Connector,
    settings: Settings,
    *,
    cache: ExpiringCache | None = None,
) -> MarketData:
    """Assemble the layer around an existing provider and stream connector."""
    if cache is None:
        cache = ExpiringCache()
    fetch_retry = RetryExecutor(
        settings.STOXLY_RETRY_ATTEMPTS,
        settings.STOXLY_RETRY_BASE_DELAY,
        retry_on=(UpstreamError,),
    )
    stream_retry = RetryExecutor(settings.STOXLY_RETRY_ATTEMPTS, settings.STOXLY_RETRY_BASE_DELAY)
    fetcher = QuoteFetcher(
        provider,
        cache,
        fetch_retry,
        quote_ttl=settings.STOXLY_QUOTE_TTL,
        search_ttl=settings.STOXLY_SEARCH_TTL,
    )
    hub = SubscriptionHub(
        connect,
        retry=stream_retry,
        reconnect=settings.STOXLY_STREAM_RECONNECT,
        cache=cache,
        cache_ttl=settings.STOXLY_QUOTE_TTL,
    )
    return MarketData(provider=provider, cache=cache, fetcher=fetcher, hub=hub)


def create_market_data(settings: Settings) -> MarketData:
    """Create the market layer based on settings.

    - STOXLY_API_URL set -> HttpQuoteProvider + websocket stream (real data)
    - Otherwise          -> SimulatedQuoteProvider (GBM simulation)
    """
    if not settings.uses_simulator:
        from .rest_client import HttpQuoteProvider

        provider = HttpQuoteProvider(
            settings.STOXLY_API_URL,
            token=settings.STOXLY_API_TOKEN,
            timeout=settings.STOXLY_HTTP_TIMEOUT,
        )
        url = settings.STOXLY_STREAM_URL or derive_stream_url(settings.STOXLY_API_URL)
        connect = websocket_connector(url, settings.STOXLY_API_TOKEN)
        logger.info("Market data source: %s (stream %s)", settings.STOXLY_API_URL, url)
        return build_market_data(provider, connect, settings)

    from .simulator import SimulatedQuoteProvider

    simulated = SimulatedQuoteProvider(stream_interval=settings.STOXLY_SIM_INTERVAL)
    logger.info("Market data source: GBM Simulator")
    return build_market_data(simulated, simulated.connect, settings)
