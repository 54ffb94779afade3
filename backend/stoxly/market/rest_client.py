"""HTTP quote provider backed by httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import NormalizationError, ProviderRejected, RateLimited, UpstreamError
from .interface import QuoteProvider

logger = logging.getLogger(__name__)


class HttpQuoteProvider(QuoteProvider):
    """QuoteProvider talking to a REST market-data API.

    Endpoints:
      - GET  {base_url}/quote/{symbol}
      - GET  {base_url}/search?q=...
      - POST {base_url}/quotes  {"symbols": [...]}

    One shared AsyncClient is kept for the provider's lifetime so connections
    are pooled across requests.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
        )

    async def get_quote(self, symbol: str) -> Any:
        return await self._request("GET", f"/quote/{symbol}")

    async def get_quotes(self, symbols: list[str]) -> list[Any]:
        payload = await self._request("POST", "/quotes", json={"symbols": symbols})
        return _as_list(payload, "/quotes")

    async def search(self, query: str) -> list[Any]:
        payload = await self._request("GET", "/search", params={"q": query})
        return _as_list(payload, "/search")

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- Internal ---

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"{method} {path} failed: {exc}") from exc

        status = response.status_code
        if status == 429:
            raise RateLimited(f"{method} {path} rate limited", retry_after=_retry_after(response))
        if status >= 500:
            raise UpstreamError(f"{method} {path} returned HTTP {status}", status_code=status)
        if status >= 400:
            raise ProviderRejected(f"{method} {path} returned HTTP {status}", status_code=status)

        try:
            return response.json()
        except ValueError as exc:
            raise NormalizationError(f"{method} {path} returned a non-JSON body") from exc


def _as_list(payload: Any, path: str) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        # Error payloads come back as a single object; let the normalizer report them
        return [payload]
    raise NormalizationError(f"{path} returned {type(payload).__name__}, expected a list")


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        logger.debug("Ignoring non-numeric Retry-After header: %r", value)
        return None
