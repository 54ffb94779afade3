"""Abstract interfaces for quote providers and streaming connections."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any, Protocol


class QuoteProvider(ABC):
    """Contract for the pull side of a market-data provider.

    Implementations return raw payloads exactly as the provider sent them;
    turning them into Quotes is the normalizer's job. Transport failures are
    raised as UpstreamError, rate limits as RateLimited and client errors as
    ProviderRejected.

    Lifecycle:
        provider = HttpQuoteProvider("https://api.example.com")
        raw = await provider.get_quote("AAPL")
        # ... app runs ...
        await provider.aclose()
    """

    @abstractmethod
    async def get_quote(self, symbol: str) -> Any:
        """Raw quote payload for one symbol (GET /quote/{symbol})."""

    @abstractmethod
    async def get_quotes(self, symbols: list[str]) -> list[Any]:
        """Raw quote payloads for many symbols in one call (POST /quotes)."""

    @abstractmethod
    async def search(self, query: str) -> list[Any]:
        """Raw quote-like matches for a free-text query (GET /search?q=)."""

    async def aclose(self) -> None:
        """Release network resources. Safe to call multiple times."""


class StreamConnection(Protocol):
    """What the SubscriptionHub needs from a streaming transport.

    A websockets client connection satisfies this as-is. Iteration yields
    inbound text frames and ends when the connection closes.
    """

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...
