"""Market data subsystem for Stoxly.

Public API:
    Quote               - Canonical, immutable quote snapshot
    ExpiringCache       - Key/value store with per-entry TTL
    RetryExecutor       - Bounded retry with linear backoff for async calls
    QuoteFetcher        - Read-through pull path for single, batch and search lookups
    SubscriptionHub     - One shared stream fanned out to many listeners
    normalize_quote     - Raw provider payload -> Quote
    create_market_data  - Factory that selects simulator or HTTP provider
    create_stream_router - FastAPI router factory for the SSE endpoint
"""

from .cache import ExpiringCache
from .factory import MarketData, create_market_data
from .fetcher import BatchResult, QuoteFetcher
from .hub import ConnectionState, Subscription, SubscriptionHub
from .interface import QuoteProvider, StreamConnection
from .models import ChartPoint, Quote
from .normalizer import normalize_quote
from .retry import RetryExecutor
from .stream import create_stream_router

__all__ = [
    "BatchResult",
    "ChartPoint",
    "ConnectionState",
    "ExpiringCache",
    "MarketData",
    "Quote",
    "QuoteFetcher",
    "QuoteProvider",
    "RetryExecutor",
    "StreamConnection",
    "Subscription",
    "SubscriptionHub",
    "create_market_data",
    "create_stream_router",
    "normalize_quote",
]
