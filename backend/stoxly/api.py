"""REST endpoints the web client calls under /api."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from .market.errors import (
    BatchUnavailable,
    QuoteError,
    QuoteUnavailable,
    RateLimited,
    UpstreamUnavailable,
)
from .market.companies import TOP_INDICES, company_name
from .market.factory import MarketData
from .market.simulator import CHART_RANGES, synthetic_history
from .watchlist import WatchlistStore

logger = logging.getLogger(__name__)


class QuotesRequest(BaseModel):
    symbols: list[str]


class SharesRequest(BaseModel):
    shares: int = Field(gt=0)


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, QuoteUnavailable):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(int(exc.retry_after))} if exc.retry_after else None
        return HTTPException(status_code=429, detail=str(exc), headers=headers)
    if isinstance(exc, (UpstreamUnavailable, BatchUnavailable, QuoteError)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def create_api_router(market: MarketData, store: WatchlistStore) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["quotes"])
    fetcher = market.fetcher

    @router.get("/quote/{symbol}")
    async def get_quote(symbol: str) -> dict:
        try:
            quote = await fetcher.get_quote(symbol)
        except (QuoteError, ValueError) as exc:
            raise _http_error(exc) from exc
        return quote.to_dict()

    @router.post("/quotes")
    async def get_quotes(body: QuotesRequest) -> dict:
        try:
            batch = await fetcher.fetch_batch(body.symbols)
        except (QuoteError, ValueError) as exc:
            raise _http_error(exc) from exc
        return {
            "quotes": [q.to_dict() for q in batch.quotes],
            "failed": {symbol: str(err) for symbol, err in batch.failures.items()},
        }

    @router.get("/indices/top")
    async def top_indices() -> list[dict]:
        """Market overview strip: the index-tracking ETFs that could be priced."""
        try:
            quotes = await fetcher.get_quotes(TOP_INDICES)
        except QuoteError as exc:
            raise _http_error(exc) from exc
        return [
            {
                "symbol": q.symbol,
                "name": q.company_name or company_name(q.symbol),
                "price": q.price,
                "change": q.change,
                "change_percent": q.change_percent,
            }
            for q in quotes
        ]

    @router.get("/search")
    async def search(q: str = Query("", max_length=64)) -> list[dict]:
        try:
            quotes = await fetcher.search_quotes(q)
        except QuoteError as exc:
            raise _http_error(exc) from exc
        return [quote.to_dict() for quote in quotes]

    @router.get("/chart/{symbol}")
    async def chart(symbol: str, period: str = Query("1M", alias="range")) -> dict:
        days = CHART_RANGES.get(period.upper())
        if days is None:
            raise HTTPException(status_code=400, detail=f"unknown range {period!r}")
        try:
            quote = await fetcher.get_quote(symbol)
        except (QuoteError, ValueError) as exc:
            raise _http_error(exc) from exc
        points = synthetic_history(quote.price, days)
        return {"symbol": quote.symbol, "range": period.upper(), "points": [p.to_dict() for p in points]}

    @router.get("/watchlist")
    async def watchlist() -> dict:
        symbols = store.watchlist()
        if not symbols:
            return {"symbols": [], "quotes": []}
        try:
            quotes = await fetcher.get_quotes(symbols)
        except QuoteError as exc:
            raise _http_error(exc) from exc
        return {"symbols": symbols, "quotes": [q.to_dict() for q in quotes]}

    @router.post("/watchlist/{symbol}")
    async def toggle_watchlist(symbol: str) -> dict:
        try:
            watching = store.toggle(symbol)
        except ValueError as exc:
            raise _http_error(exc) from exc
        return {"symbol": symbol.strip().upper(), "watching": watching}

    @router.get("/portfolio")
    async def portfolio() -> dict:
        holdings = store.holdings()
        if not holdings:
            return {"holdings": [], "total_value": 0.0}
        try:
            batch = await fetcher.fetch_batch(list(holdings))
        except QuoteError as exc:
            raise _http_error(exc) from exc
        prices = {q.symbol: q.price for q in batch.quotes}
        rows = []
        for symbol, shares in sorted(holdings.items()):
            price = prices.get(symbol)
            rows.append(
                {
                    "symbol": symbol,
                    "shares": shares,
                    "price": price,
                    # Unpriced holdings are reported, not valued at zero
                    "value": round(price * shares, 2) if price is not None else None,
                }
            )
        total = round(sum(r["value"] for r in rows if r["value"] is not None), 2)
        return {"holdings": rows, "total_value": total}

    @router.post("/portfolio/{symbol}/buy")
    async def buy(symbol: str, body: SharesRequest) -> dict:
        try:
            shares = store.add_shares(symbol, body.shares)
        except ValueError as exc:
            raise _http_error(exc) from exc
        return {"symbol": symbol.strip().upper(), "shares": shares}

    @router.post("/portfolio/{symbol}/sell")
    async def sell(symbol: str, body: SharesRequest) -> dict:
        try:
            shares = store.remove_shares(symbol, body.shares)
        except ValueError as exc:
            raise _http_error(exc) from exc
        return {"symbol": symbol.strip().upper(), "shares": shares}

    @router.get("/metrics")
    async def metrics() -> dict:
        return {"fetcher": fetcher.metrics(), "hub": market.hub.metrics()}

    return router
