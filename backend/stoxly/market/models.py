"""Data models for market data."""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Quote:
    """Canonical snapshot of a single symbol, whatever the provider shape was."""

    symbol: str
    price: float
    change_percent: float = 0.0
    bid: float = 0.0
    ask: float = 0.0
    bid_size: int = 0
    ask_size: int = 0
    volume: int = 0
    updated_at: float = field(default_factory=time.time)  # Unix seconds
    company_name: str | None = None

    @property
    def change(self) -> float:
        """Absolute change implied by change_percent."""
        previous = self.price / (1 + self.change_percent / 100) if self.change_percent != -100 else 0.0
        return round(self.price - previous, 4)

    @property
    def direction(self) -> str:
        """'up', 'down', or 'flat'."""
        if self.change_percent > 0:
            return "up"
        elif self.change_percent < 0:
            return "down"
        return "flat"

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "symbol": self.symbol,
            "company_name": self.company_name,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
            "direction": self.direction,
            "bid": self.bid,
            "ask": self.ask,
            "bid_size": self.bid_size,
            "ask_size": self.ask_size,
            "volume": self.volume,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class ChartPoint:
    """One point of a (synthetic) price history."""

    timestamp: float
    price: float

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "price": self.price}
