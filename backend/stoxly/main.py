"""FastAPI application factory: market layer, routers and lifespan."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import create_api_router
from .config import Settings, get_settings
from .market import create_market_data, create_stream_router
from .market.companies import DEFAULT_SYMBOLS
from .market.errors import QuoteError
from .market.factory import MarketData
from .watchlist import WatchlistStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    market: MarketData | None = None,
    store: WatchlistStore | None = None,
) -> FastAPI:
    """Build the FastAPI app.

    The market layer is created here (not in the lifespan) because routers
    need it at include time; nothing touches the network until startup.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.STOXLY_LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    market = market or create_market_data(settings)
    store = store or WatchlistStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await market.fetcher.refresh(DEFAULT_SYMBOLS)
        except QuoteError as exc:
            # Pages fall back to per-symbol fetches; startup must not fail on this
            logger.warning("Initial cache warm-up failed: %s", exc)
        try:
            yield
        finally:
            await market.aclose()

    app = FastAPI(title="Stoxly", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.market = market
    app.state.store = store
    app.include_router(create_api_router(market, store))
    app.include_router(create_stream_router(market.hub))
    return app


app = create_app()
