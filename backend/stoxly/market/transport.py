"""Websocket transport for the realtime quote stream."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import websockets

from .interface import StreamConnection

logger = logging.getLogger(__name__)

Connector = Callable[[], Awaitable[StreamConnection]]


def stream_url(url: str, token: str | None = None) -> str:
    """Append ?token=... to the realtime endpoint, keeping any existing query."""
    if not token:
        return url
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k != "token"]
    query.append(("token", token))
    return urlunsplit(parts._replace(query=urlencode(query)))


def derive_stream_url(api_url: str) -> str:
    """http(s)://host/base -> ws(s)://host/base/realtime"""
    parts = urlsplit(api_url.rstrip("/"))
    scheme = {"https": "wss", "http": "ws"}.get(parts.scheme, parts.scheme)
    return urlunsplit(parts._replace(scheme=scheme, path=f"{parts.path}/realtime"))


def websocket_connector(url: str, token: str | None = None, **options: Any) -> Connector:
    """Connector for SubscriptionHub that opens a websockets client connection.

    Each call performs a fresh handshake; the hub decides when to call it.
    """
    target = stream_url(url, token)

    async def connect() -> StreamConnection:
        logger.info("Opening quote stream: %s", url)
        return await websockets.connect(target, **options)

    return connect
