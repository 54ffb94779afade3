"""Fixtures for market data tests: fake stream connections and retries."""

import asyncio
import json

import pytest

from stoxly.market.retry import RetryExecutor

_CLOSED = object()


class FakeConnection:
    """In-memory StreamConnection. Tests push frames and inspect sends."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self.fail_sends = False
        self._frames: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.fail_sends:
            raise ConnectionError("send failed")
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        self.closed = True
        self._frames.put_nowait(_CLOSED)

    def push(self, payload) -> None:
        self._frames.put_nowait(payload if isinstance(payload, str) else json.dumps(payload))

    def drop(self) -> None:
        """Simulate the provider closing the connection."""
        self._frames.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self._frames.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Connector handing out FakeConnections.

    Set `gate` to hold handshakes in flight; queue exceptions in `failures`
    to make the next connect attempts fail.
    """

    def __init__(self) -> None:
        self.connections: list[FakeConnection] = []
        self.failures: list[Exception] = []
        self.attempts = 0
        self.gate: asyncio.Event | None = None

    @property
    def latest(self) -> FakeConnection:
        return self.connections[-1]

    async def __call__(self) -> FakeConnection:
        self.attempts += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)
        connection = FakeConnection()
        self.connections.append(connection)
        return connection


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def sleeps():
    """Delays requested by `instant_retry`, in order."""
    return []


@pytest.fixture
def instant_retry(sleeps):
    """RetryExecutor that records its backoff delays instead of sleeping."""

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return RetryExecutor(3, 1.0, sleep=fake_sleep)


@pytest.fixture
def run_until_idle():
    """Let background tasks run until they block again."""

    async def settle(rounds: int = 20) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return settle
