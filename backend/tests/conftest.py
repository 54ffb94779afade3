"""Pytest configuration and fixtures."""

import pytest

from stoxly.market.interface import QuoteProvider


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def quote_payload(symbol: str, last: float, mid: float | None = None, updated: int = 1_700_000_000) -> dict:
    """Parallel-array payload the way the streaming provider sends it."""
    return {
        "s": "ok",
        "symbol": [symbol],
        "last": [last],
        "mid": [last if mid is None else mid],
        "bid": [last - 0.01],
        "ask": [last + 0.01],
        "bidSize": [100],
        "askSize": [200],
        "volume": [1_000],
        "updated": [updated],
    }


class StubProvider(QuoteProvider):
    """QuoteProvider whose answers are scripted per symbol.

    Each script entry is either a payload (returned) or an exception
    (raised). The last entry repeats once the script runs out.
    """

    def __init__(self) -> None:
        self.scripts: dict[str, list] = {}
        self.calls: dict[str, int] = {}
        self.batch_calls: list[list[str]] = []
        self.search_calls: list[str] = []
        self.search_rows: list = []
        self.closed = False

    def script(self, symbol: str, *outcomes) -> None:
        self.scripts[symbol] = list(outcomes)

    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def get_quote(self, symbol: str):
        index = self.calls.get(symbol, 0)
        self.calls[symbol] = index + 1
        script = self.scripts.get(symbol) or [{"s": "error", "errmsg": f"Unknown symbol {symbol}"}]
        outcome = script[min(index, len(script) - 1)]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def get_quotes(self, symbols: list[str]) -> list:
        self.batch_calls.append(list(symbols))
        return [self.scripts[s][0] for s in symbols if s in self.scripts]

    async def search(self, query: str) -> list:
        self.search_calls.append(query)
        return list(self.search_rows)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    """A clock that only moves when the test says so."""
    return FakeClock()


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def payload():
    return quote_payload
