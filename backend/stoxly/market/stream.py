"""SSE streaming endpoint relaying hub updates to browsers."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from .hub import SubscriptionHub
from .models import Quote

logger = logging.getLogger(__name__)


def create_stream_router(hub: SubscriptionHub) -> APIRouter:
    """Create the SSE streaming router with a reference to the hub.

    This factory pattern lets us inject the hub without globals.
    """
    router = APIRouter(prefix="/api/stream", tags=["streaming"])

    @router.get("/quotes")
    async def stream_quotes(
        request: Request,
        symbols: str = Query(..., description="Comma-separated tickers"),
    ) -> StreamingResponse:
        """SSE endpoint for live quotes of the requested symbols.

        Every quote the hub dispatches for those symbols becomes one event:

            data: {"symbol": "AAPL", "price": 190.50, ...}

        The subscription lives exactly as long as the HTTP response.
        """
        wanted = [s.strip().upper() for s in symbols.split(",") if s.strip()]
        if not wanted:
            raise HTTPException(status_code=400, detail="symbols must not be empty")
        return StreamingResponse(
            _generate_events(hub, wanted, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    hub: SubscriptionHub,
    symbols: list[str],
    request: Request,
    heartbeat: float = 15.0,
    max_pending: int = 100,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted quote events.

    Quotes are queued by the hub listener and drained here; a comment line
    goes out every `heartbeat` seconds of silence so proxies keep the
    connection open and disconnects are noticed. A client that falls more
    than `max_pending` quotes behind loses the oldest ones.
    """
    queue: asyncio.Queue[Quote] = asyncio.Queue(maxsize=max_pending)
    client_ip = request.client.host if request.client else "unknown"

    def enqueue(quote: Quote) -> None:
        if queue.full():
            queue.get_nowait()
            logger.debug("SSE client %s is behind; dropped oldest quote", client_ip)
        queue.put_nowait(quote)

    subscription = await hub.subscribe(symbols, enqueue)
    logger.info("SSE client connected: %s (%s)", client_ip, ",".join(symbols))
    try:
        # Tell the client to retry after 1 second if the connection drops
        yield "retry: 1000\n\n"
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break
            try:
                quote = await asyncio.wait_for(queue.get(), timeout=heartbeat)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"data: {json.dumps(quote.to_dict())}\n\n"
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
        raise
    finally:
        await subscription.unsubscribe()
