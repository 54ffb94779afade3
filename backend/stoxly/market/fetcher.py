"""Read-through quote fetcher: cache, then retried upstream call, then normalize."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace

from .cache import ExpiringCache
from .companies import KNOWN_NAMES, match_symbols
from .errors import (
    BatchUnavailable,
    ExhaustedRetries,
    NormalizationError,
    ProviderRejected,
    QuoteError,
    QuoteUnavailable,
    UpstreamError,
    UpstreamUnavailable,
)
from .interface import QuoteProvider
from .models import Quote
from .normalizer import normalize_quote
from .retry import RetryExecutor

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str) -> str:
    value = str(symbol).strip().upper()
    if not value:
        raise ValueError("symbol must not be empty")
    return value


@dataclass(slots=True)
class BatchResult:
    """Outcome of a batch fetch. Failed symbols are left out of `quotes`."""

    quotes: list[Quote] = field(default_factory=list)
    failures: dict[str, QuoteError] = field(default_factory=dict)


class QuoteFetcher:
    """Point-in-time quote lookups with a short-lived read-through cache.

    Cache keys:
        quote_{SYMBOL}           one Quote
        search_{query}           matched symbols from the local universe
        remote_search_{query}    Quotes from the provider's /search endpoint

    Failures are never cached, so the next call after an error goes upstream
    again. Concurrent misses for the same symbol are not collapsed.

    The retry executor should only retry UpstreamError; rate limits and
    provider rejections are answered immediately.
    """

    def __init__(
        self,
        provider: QuoteProvider,
        cache: ExpiringCache,
        retry: RetryExecutor | None = None,
        *,
        quote_ttl: float = 10.0,
        search_ttl: float = 300.0,
        universe: dict[str, str] | None = None,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._retry = retry or RetryExecutor(retry_on=(UpstreamError,))
        self._quote_ttl = quote_ttl
        self._search_ttl = search_ttl
        self._universe = KNOWN_NAMES if universe is None else universe

        self.cache_hits = 0
        self.cache_misses = 0
        self.upstream_requests = 0
        self.failures = 0

    @property
    def cache(self) -> ExpiringCache:
        return self._cache

    async def get_quote(self, symbol: str) -> Quote:
        """Quote for one symbol, served from cache when fresh."""
        symbol = normalize_symbol(symbol)
        key = f"quote_{symbol}"
        cached = self._cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        self.cache_misses += 1
        try:
            raw = await self._retry.execute(lambda: self._fetch_raw(symbol))
        except ExhaustedRetries as exc:
            self.failures += 1
            raise UpstreamUnavailable(symbol, str(exc.last_error)) from exc
        except ProviderRejected as exc:
            self.failures += 1
            raise QuoteUnavailable(symbol, str(exc)) from exc

        try:
            quote = self._with_name(normalize_quote(raw, symbol=symbol))
        except NormalizationError as exc:
            self.failures += 1
            raise QuoteUnavailable(symbol, str(exc)) from exc
        if quote.symbol != symbol:
            self.failures += 1
            raise QuoteUnavailable(symbol, f"provider answered for {quote.symbol}")

        self._cache.set(key, quote, self._quote_ttl)
        return quote

    async def fetch_batch(self, symbols: list[str]) -> BatchResult:
        """Fetch many symbols concurrently, isolating per-symbol failures.

        Raises BatchUnavailable only when every requested symbol failed.
        """
        unique: list[str] = []
        for raw_symbol in symbols:
            symbol = normalize_symbol(raw_symbol)
            if symbol not in unique:
                unique.append(symbol)

        result = BatchResult()
        if not unique:
            return result

        outcomes = await asyncio.gather(*(self.get_quote(s) for s in unique), return_exceptions=True)
        for symbol, outcome in zip(unique, outcomes):
            if isinstance(outcome, Quote):
                result.quotes.append(outcome)
            elif isinstance(outcome, QuoteError):
                logger.warning("Quote for %s unavailable: %s", symbol, outcome)
                result.failures[symbol] = outcome
            else:
                raise outcome

        if not result.quotes:
            raise BatchUnavailable(result.failures)
        return result

    async def get_quotes(self, symbols: list[str]) -> list[Quote]:
        """Quotes for many symbols, in request order, failed symbols omitted."""
        return (await self.fetch_batch(symbols)).quotes

    async def search_quotes(self, query: str) -> list[Quote]:
        """Quotes for every known symbol whose ticker or name matches query."""
        needle = query.strip().lower()
        if not needle:
            return []
        key = f"search_{needle}"
        symbols = self._cache.get(key)
        if symbols is None:
            symbols = match_symbols(needle, self._universe)
            self._remember(key, symbols)
        if not symbols:
            return []
        return await self.get_quotes(symbols)

    async def search_remote(self, query: str) -> list[Quote]:
        """Search through the provider's own /search endpoint."""
        needle = query.strip()
        if not needle:
            return []
        key = f"remote_search_{needle.lower()}"
        cached = self._cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        self.cache_misses += 1
        try:
            rows = await self._retry.execute(lambda: self._search_raw(needle))
        except ExhaustedRetries as exc:
            self.failures += 1
            raise UpstreamUnavailable(needle, str(exc.last_error)) from exc

        quotes = self._normalize_rows(rows)
        self._remember(key, quotes)
        return quotes

    async def refresh(self, symbols: list[str]) -> list[Quote]:
        """Warm the cache for many symbols with a single batch request."""
        unique = list(dict.fromkeys(normalize_symbol(s) for s in symbols))
        if not unique:
            return []
        try:
            rows = await self._retry.execute(lambda: self._batch_raw(unique))
        except ExhaustedRetries as exc:
            self.failures += 1
            raise UpstreamUnavailable(",".join(unique), str(exc.last_error)) from exc

        quotes = self._normalize_rows(rows)
        for quote in quotes:
            self._cache.set(f"quote_{quote.symbol}", quote, self._quote_ttl)
        logger.info("Cache warmed: %d/%d symbols", len(quotes), len(unique))
        return quotes

    def metrics(self) -> dict[str, int]:
        return {
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "upstream_requests": self.upstream_requests,
            "failures": self.failures,
        }

    # --- Internal ---

    async def _fetch_raw(self, symbol: str):
        self.upstream_requests += 1
        return await self._provider.get_quote(symbol)

    async def _search_raw(self, query: str):
        self.upstream_requests += 1
        return await self._provider.search(query)

    async def _batch_raw(self, symbols: list[str]):
        self.upstream_requests += 1
        return await self._provider.get_quotes(symbols)

    def _remember(self, key: str, value) -> None:
        # Free-text keys are unbounded; every new one sweeps expired entries
        removed = self._cache.purge_expired()
        if removed:
            logger.debug("Purged %d expired cache entries", removed)
        self._cache.set(key, value, self._search_ttl)

    def _normalize_rows(self, rows: list) -> list[Quote]:
        quotes: list[Quote] = []
        for row in rows:
            try:
                quotes.append(self._with_name(normalize_quote(row)))
            except NormalizationError as exc:
                logger.warning("Skipping malformed row: %s", exc)
        return quotes

    def _with_name(self, quote: Quote) -> Quote:
        if quote.company_name is None and quote.symbol in self._universe:
            return replace(quote, company_name=self._universe[quote.symbol])
        return quote
