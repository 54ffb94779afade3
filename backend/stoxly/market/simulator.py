"""GBM-based offline quote provider and stream."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from collections.abc import AsyncIterator

import numpy as np

from .companies import company_name, match_symbols
from .interface import QuoteProvider
from .models import ChartPoint
from .seed_prices import (
    CROSS_SECTOR_CORR,
    DEFAULT_SIGMA,
    DRIFT,
    INTRA_SECTOR_CORR,
    SECTORS,
    SEED_PRICES,
    SIGMAS,
)

logger = logging.getLogger(__name__)

# Named ranges the stock-details chart offers, in days
CHART_RANGES: dict[str, int] = {"1D": 1, "1W": 7, "1M": 30, "1Y": 365, "5Y": 1825}


class GBMSimulator:
    """Correlated Geometric Brownian Motion over a fixed set of symbols.

        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Z is drawn through the Cholesky factor of a sector-based correlation
    matrix, so stocks in one sector drift together.
    """

    TRADING_SECONDS_PER_YEAR = 252 * 6.5 * 3600
    DEFAULT_DT = 1.0 / TRADING_SECONDS_PER_YEAR  # one second per step

    def __init__(self, symbols: list[str], dt: float = DEFAULT_DT, seed: int | None = None) -> None:
        self._dt = dt
        self._rng = np.random.default_rng(seed)
        self._symbols = list(dict.fromkeys(symbols))
        self._prices: dict[str, float] = {s: SEED_PRICES[s] for s in self._symbols}
        self._previous: dict[str, float] = dict(self._prices)
        self._volume: dict[str, int] = {s: 0 for s in self._symbols}
        self._cholesky = self._correlation_factor()

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    def price(self, symbol: str) -> float | None:
        return self._prices.get(symbol)

    def step(self) -> dict[str, float]:
        """Advance every symbol one tick. Returns {symbol: new_price}."""
        n = len(self._symbols)
        if n == 0:
            return {}
        z = self._rng.standard_normal(n)
        if self._cholesky is not None:
            z = self._cholesky @ z

        for i, symbol in enumerate(self._symbols):
            sigma = SIGMAS.get(symbol, DEFAULT_SIGMA)
            drift = (DRIFT - 0.5 * sigma**2) * self._dt
            shock = sigma * math.sqrt(self._dt) * z[i]
            self._previous[symbol] = self._prices[symbol]
            self._prices[symbol] *= math.exp(drift + shock)
            self._volume[symbol] += int(self._rng.integers(100, 5_000))
        return {s: round(p, 2) for s, p in self._prices.items()}

    def payload(self, symbol: str, now: float | None = None) -> dict:
        """Parallel-array quote payload for one symbol, as a provider sends it."""
        last = round(self._prices[symbol], 2)
        reference = self._previous[symbol]
        half_spread = max(round(reference * 0.0002, 2), 0.01)
        bid = round(reference - half_spread, 2)
        ask = round(reference + half_spread, 2)
        return {
            "s": "ok",
            "symbol": [symbol],
            "last": [last],
            "mid": [round((bid + ask) / 2, 4)],
            "bid": [bid],
            "ask": [ask],
            "bidSize": [int(self._rng.integers(1, 40)) * 100],
            "askSize": [int(self._rng.integers(1, 40)) * 100],
            "volume": [self._volume[symbol]],
            "updated": [int(time.time() if now is None else now)],
        }

    def _correlation_factor(self) -> np.ndarray | None:
        n = len(self._symbols)
        if n <= 1:
            return None
        corr = np.full((n, n), CROSS_SECTOR_CORR)
        np.fill_diagonal(corr, 1.0)
        for i, a in enumerate(self._symbols):
            for j, b in enumerate(self._symbols):
                if i != j and any(a in members and b in members for members in SECTORS.values()):
                    corr[i, j] = INTRA_SECTOR_CORR
        return np.linalg.cholesky(corr)


class SimulatedStream:
    """StreamConnection over a GBMSimulator.

    Honours subscribe/unsubscribe actions and emits one JSON frame per
    subscribed symbol every `interval` seconds until closed.
    """

    def __init__(self, simulator: GBMSimulator, interval: float = 1.0) -> None:
        self._sim = simulator
        self._interval = interval
        self._subscribed: set[str] = set()
        self._closed = asyncio.Event()

    @property
    def subscribed(self) -> set[str]:
        return set(self._subscribed)

    async def send(self, message: str) -> None:
        if self._closed.is_set():
            raise ConnectionError("simulated stream is closed")
        request = json.loads(message)
        symbols = {s for s in request.get("symbols", []) if self._sim.price(s) is not None}
        if request.get("action") == "subscribe":
            self._subscribed |= symbols
        elif request.get("action") == "unsubscribe":
            self._subscribed -= symbols

    async def close(self) -> None:
        self._closed.set()

    def __aiter__(self) -> AsyncIterator[str]:
        return self._frames()

    async def _frames(self) -> AsyncIterator[str]:
        while not self._closed.is_set():
            try:
                await asyncio.wait_for(self._closed.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            if self._closed.is_set():
                return
            self._sim.step()
            for symbol in sorted(self._subscribed):
                yield json.dumps(self._sim.payload(symbol))


class SimulatedQuoteProvider(QuoteProvider):
    """QuoteProvider (and stream connector) backed by the GBM simulator.

    Used when no real provider is configured. Unknown symbols are answered
    with the provider-style error payload a real API would send.
    """

    def __init__(
        self,
        simulator: GBMSimulator | None = None,
        stream_interval: float = 1.0,
    ) -> None:
        self._sim = simulator or GBMSimulator(list(SEED_PRICES))
        self._interval = stream_interval

    @property
    def simulator(self) -> GBMSimulator:
        return self._sim

    async def get_quote(self, symbol: str) -> dict:
        return self._answer(symbol)

    async def get_quotes(self, symbols: list[str]) -> list[dict]:
        return [self._answer(s) for s in symbols]

    async def search(self, query: str) -> list[dict]:
        return [self._answer(s) for s in match_symbols(query)]

    async def connect(self) -> SimulatedStream:
        logger.info("Opening simulated quote stream (%.1fs interval)", self._interval)
        return SimulatedStream(self._sim, self._interval)

    def _answer(self, symbol: str) -> dict:
        if self._sim.price(symbol) is None:
            return {"s": "error", "errmsg": f"Unknown symbol {symbol}"}
        payload = self._sim.payload(symbol)
        payload["companyName"] = [company_name(symbol)]
        return payload


def synthetic_history(
    price: float,
    days: int,
    *,
    sigma: float = DEFAULT_SIGMA,
    end: float | None = None,
    seed: int | None = None,
) -> list[ChartPoint]:
    """Made-up daily closes that end exactly at `price`.

    A one-day range is rendered hourly over a trading session instead.
    """
    rng = np.random.default_rng(seed)
    end_ts = time.time() if end is None else end
    if days <= 1:
        points, spacing, dt = 8, 3600.0, 1 / (252 * 6.5)
    else:
        points, spacing, dt = days, 86400.0, 1 / 252

    log_returns = (DRIFT - 0.5 * sigma**2) * dt + sigma * math.sqrt(dt) * rng.standard_normal(points - 1)
    # Walk backwards from the final price
    path = np.concatenate(([0.0], np.cumsum(log_returns[::-1])))[::-1]
    prices = price * np.exp(-path)
    return [
        ChartPoint(timestamp=end_ts - spacing * (points - 1 - i), price=round(float(p), 2))
        for i, p in enumerate(prices)
    ]
