"""Realtime subscription hub: one streaming connection, many listeners."""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from collections.abc import Callable, Iterable

from .cache import ExpiringCache
from .errors import ConnectionLost, ExhaustedRetries, NormalizationError, RateLimited
from .interface import StreamConnection
from .models import Quote
from .normalizer import normalize_quote
from .retry import RetryExecutor
from .transport import Connector

logger = logging.getLogger(__name__)

Listener = Callable[[Quote], None]


class ConnectionState(enum.Enum):
    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


class Subscription:
    """Handle returned by SubscriptionHub.subscribe().

    cancel() is synchronous so a listener can drop itself mid-dispatch;
    `await handle()` (or `await handle.unsubscribe()`) also waits for any
    connection teardown the cancellation triggered. Both are idempotent.
    """

    def __init__(self, hub: SubscriptionHub, symbols: tuple[str, ...], callback: Listener) -> None:
        self._hub = hub
        self.symbols = symbols
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._hub._release(self)

    async def unsubscribe(self) -> None:
        self.cancel()
        await self._hub.wait_settled()

    async def __call__(self) -> None:
        await self.unsubscribe()

    def _deactivate(self) -> None:
        self._active = False


class SubscriptionHub:
    """Multiplexes a single streaming connection across many subscribers.

    State machine:
        CLOSED -> CONNECTING     first subscribe() with no connection
        CONNECTING -> OPEN       handshake done; one subscribe message for the
                                 whole registry
        OPEN -> OPEN             subscribe() of new symbols sends only those;
                                 a symbol losing its last listener is
                                 unsubscribed upstream
        * -> CLOSING -> CLOSED   registry became empty, or unsubscribe_all()

    When the connection drops while OPEN the hub reconnects (if enabled) and
    re-sends the full registry. Otherwise it goes CLOSED, keeps its listeners
    and reports ConnectionLost; the next subscribe() reconnects.

    All methods must be called from the event loop that owns the hub.
    """

    def __init__(
        self,
        connect: Connector,
        *,
        retry: RetryExecutor | None = None,
        reconnect: bool = True,
        cache: ExpiringCache | None = None,
        cache_ttl: float = 10.0,
        on_connection_lost: Callable[[ConnectionLost], None] | None = None,
    ) -> None:
        self._connect = connect
        self._retry = retry or RetryExecutor()
        self._reconnect = reconnect
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._on_connection_lost = on_connection_lost

        self._state = ConnectionState.CLOSED
        self._registry: dict[str, set[Subscription]] = {}
        self._active: set[str] = set()  # Symbols the provider has been told about
        self._last_seen: dict[str, float] = {}
        self._connection: StreamConnection | None = None
        self._task: asyncio.Task | None = None
        self._shutdown_task: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()

        self.messages = 0
        self.dispatches = 0
        self.dropped = 0
        self.reconnects = 0

    # --- Public API ---

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def symbols(self) -> list[str]:
        """Symbols with at least one listener."""
        return sorted(self._registry)

    @property
    def active_symbols(self) -> list[str]:
        """Symbols currently subscribed on the provider side."""
        return sorted(self._active)

    def listener_count(self, symbol: str | None = None) -> int:
        if symbol is not None:
            return len(self._registry.get(symbol.strip().upper(), ()))
        return sum(len(subs) for subs in self._registry.values())

    async def subscribe(self, symbols: Iterable[str], callback: Listener) -> Subscription:
        """Register callback for every symbol. Returns the unsubscribe handle."""
        wanted = tuple(dict.fromkeys(s.strip().upper() for s in symbols if s and s.strip()))
        if not wanted:
            raise ValueError("subscribe() needs at least one symbol")

        subscription = Subscription(self, wanted, callback)
        added: list[str] = []
        for symbol in wanted:
            listeners = self._registry.setdefault(symbol, set())
            if not listeners:
                added.append(symbol)
            listeners.add(subscription)
        logger.debug("Subscribed %s (new upstream: %s)", ",".join(wanted), ",".join(added) or "-")

        if self._state is ConnectionState.CLOSED:
            self._start()
        elif self._state is ConnectionState.OPEN and added:
            await self._send_action("subscribe", added)
        # CONNECTING: the open handler sends the full registry.
        # CLOSING: the shutdown reconnects once it completes.
        return subscription

    async def unsubscribe_all(self) -> None:
        """Drop every listener and close the connection.

        This invalidates subscriptions held by every other caller too.
        """
        count = self.listener_count()
        for listeners in self._registry.values():
            for subscription in listeners:
                subscription._deactivate()
        self._registry.clear()
        logger.info("Global unsubscribe: dropped %d listener(s)", count)
        self._begin_shutdown()
        await self.wait_settled()

    async def wait_settled(self) -> None:
        """Wait until a pending teardown (if any) has finished."""
        task = self._shutdown_task
        if task is not None and task is not asyncio.current_task():
            await asyncio.shield(task)

    def metrics(self) -> dict[str, int | str]:
        return {
            "state": self._state.value,
            "symbols": len(self._registry),
            "listeners": self.listener_count(),
            "messages": self.messages,
            "dispatches": self.dispatches,
            "dropped": self.dropped,
            "reconnects": self.reconnects,
        }

    # --- Registry ---

    def _release(self, subscription: Subscription) -> None:
        emptied: list[str] = []
        for symbol in subscription.symbols:
            listeners = self._registry.get(symbol)
            if listeners is None:
                continue
            listeners.discard(subscription)
            if not listeners:
                del self._registry[symbol]
                self._last_seen.pop(symbol, None)
                emptied.append(symbol)

        if not self._registry:
            self._begin_shutdown()
        elif emptied and self._state is ConnectionState.OPEN:
            self._spawn(self._send_action("unsubscribe", emptied))

    # --- Connection lifecycle ---

    def _start(self) -> None:
        self._state = ConnectionState.CONNECTING
        self._task = asyncio.get_running_loop().create_task(self._run(), name="quote-hub-stream")

    def _begin_shutdown(self) -> None:
        if self._state is ConnectionState.CLOSED or self._shutdown_task is not None:
            return
        self._state = ConnectionState.CLOSING
        self._shutdown_task = asyncio.get_running_loop().create_task(self._shutdown(), name="quote-hub-shutdown")

    async def _shutdown(self) -> None:
        try:
            task, self._task = self._task, None
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            for pending in list(self._background):
                pending.cancel()

            connection, self._connection = self._connection, None
            if connection is not None:
                try:
                    await connection.close()
                except Exception as exc:
                    logger.warning("Error while closing quote stream: %s", exc)

            self._active.clear()
            self._state = ConnectionState.CLOSED
            logger.info("Quote stream closed")
        finally:
            self._shutdown_task = None

        if self._registry:
            # Someone subscribed while we were closing
            self._start()

    async def _run(self) -> None:
        """Connect, subscribe, read until the connection ends; maybe reconnect.

        Drops with no message in between count as consecutive; after more
        than retry.max_attempts of them the hub gives up.
        """
        drops = 0
        while True:
            try:
                connection = await self._retry.execute(self._connect)
            except ExhaustedRetries as exc:
                self._lost(f"could not connect: {exc.last_error}")
                return

            self._connection = connection
            self._state = ConnectionState.OPEN
            self._active.clear()
            logger.info("Quote stream open (%d symbols)", len(self._registry))
            if self._registry:
                await self._send_action("subscribe", sorted(self._registry))

            seen = self.messages
            error: Exception | None = None
            try:
                async for raw in connection:
                    self._handle_message(raw)
            except Exception as exc:
                error = exc

            # Only an unexpected end gets here; teardown cancels this task first
            self._connection = None
            self._active.clear()
            drops = 1 if self.messages > seen else drops + 1
            reason = f"stream error: {error}" if error else "stream closed by provider"
            if not self._reconnect or not self._registry or drops > self._retry.max_attempts:
                self._lost(reason)
                return
            self.reconnects += 1
            logger.warning("Quote stream dropped (%s); reconnecting", reason)
            self._state = ConnectionState.CONNECTING
            await self._retry.backoff(drops)

    def _lost(self, reason: str) -> None:
        self._connection = None
        self._task = None
        self._active.clear()
        self._state = ConnectionState.CLOSED
        logger.error("Quote stream lost: %s (%d symbols stop updating)", reason, len(self._registry))
        if self._on_connection_lost is not None:
            self._on_connection_lost(ConnectionLost(reason))

    async def _send_action(self, action: str, symbols: list[str]) -> None:
        connection = self._connection
        if self._state is not ConnectionState.OPEN or connection is None:
            logger.debug("Dropping %s for %s: stream is %s", action, ",".join(symbols), self._state.value)
            return
        try:
            await connection.send(json.dumps({"action": action, "symbols": symbols}))
        except Exception as exc:
            # The reader sees the broken connection and handles it
            logger.warning("Failed to send %s for %s: %s", action, ",".join(symbols), exc)
            return
        if action == "subscribe":
            self._active.update(symbols)
        else:
            self._active.difference_update(symbols)
        logger.debug("Sent %s: %s", action, ",".join(symbols))

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # --- Dispatch ---

    def _handle_message(self, raw: str | bytes) -> None:
        if self._state is not ConnectionState.OPEN:
            return
        self.messages += 1
        try:
            quote = normalize_quote(raw)
        except RateLimited as exc:
            logger.warning("Provider rate limit on stream: %s", exc)
            return
        except NormalizationError as exc:
            logger.debug("Skipping non-quote frame: %s", exc)
            return

        listeners = self._registry.get(quote.symbol)
        if not listeners:
            self.dropped += 1
            return

        previous = self._last_seen.get(quote.symbol)
        if previous is not None and quote.updated_at < previous:
            logger.warning(
                "Out-of-order quote for %s: %.3f < %.3f",
                quote.symbol,
                quote.updated_at,
                previous,
            )
        else:
            self._last_seen[quote.symbol] = quote.updated_at

        if self._cache is not None:
            self._cache.set(f"quote_{quote.symbol}", quote, self._cache_ttl)

        # Snapshot: listeners may cancel themselves (or others) while we iterate
        for subscription in list(listeners):
            if not subscription.active:
                continue
            self.dispatches += 1
            try:
                subscription.callback(quote)
            except Exception:
                logger.exception("Listener for %s failed", quote.symbol)
