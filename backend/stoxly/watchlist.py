"""In-memory watchlist and portfolio bookkeeping.

Buying and selling here only moves share counts around; nothing is sent to
a broker and nothing outlives the process.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class WatchlistStore:
    def __init__(self, watchlist: list[str] | None = None, portfolio: dict[str, int] | None = None) -> None:
        self._watchlist: set[str] = {_clean(s) for s in watchlist or []}
        self._portfolio: dict[str, int] = {}
        for symbol, shares in (portfolio or {}).items():
            self.add_shares(symbol, shares)

    # --- Watchlist ---

    def toggle(self, symbol: str) -> bool:
        """Flip membership. Returns True if the symbol is now watched."""
        symbol = _clean(symbol)
        if symbol in self._watchlist:
            self._watchlist.remove(symbol)
            logger.info("Watchlist: removed %s", symbol)
            return False
        self._watchlist.add(symbol)
        logger.info("Watchlist: added %s", symbol)
        return True

    def is_watched(self, symbol: str) -> bool:
        return _clean(symbol) in self._watchlist

    def watchlist(self) -> list[str]:
        return sorted(self._watchlist)

    # --- Portfolio ---

    def add_shares(self, symbol: str, shares: int) -> int:
        """Buy shares. Returns the new holding."""
        symbol = _clean(symbol)
        _check_shares(shares)
        self._portfolio[symbol] = self._portfolio.get(symbol, 0) + shares
        return self._portfolio[symbol]

    def remove_shares(self, symbol: str, shares: int) -> int:
        """Sell shares, never going below zero. A zero holding is dropped."""
        symbol = _clean(symbol)
        _check_shares(shares)
        remaining = max(0, self._portfolio.get(symbol, 0) - shares)
        if remaining:
            self._portfolio[symbol] = remaining
        else:
            self._portfolio.pop(symbol, None)
        return remaining

    def shares(self, symbol: str) -> int:
        return self._portfolio.get(_clean(symbol), 0)

    def holdings(self) -> dict[str, int]:
        return dict(self._portfolio)


def _clean(symbol: str) -> str:
    value = str(symbol).strip().upper()
    if not value:
        raise ValueError("symbol must not be empty")
    return value


def _check_shares(shares: int) -> None:
    if isinstance(shares, bool) or not isinstance(shares, int) or shares <= 0:
        raise ValueError(f"shares must be a positive integer, got {shares!r}")
