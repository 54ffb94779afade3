"""The symbol universe the app knows company names for."""

from __future__ import annotations

COMPANY_NAMES: dict[str, str] = {
    "AAPL": "Apple Inc.",
    "MSFT": "Microsoft Corporation",
    "GOOGL": "Alphabet Inc.",
    "AMZN": "Amazon.com Inc.",
    "NVDA": "NVIDIA Corporation",
    "META": "Meta Platforms Inc.",
    "TSLA": "Tesla Inc.",
    "JPM": "JPMorgan Chase & Co.",
    "V": "Visa Inc.",
    "PG": "Procter & Gamble Co.",
    "JNJ": "Johnson & Johnson",
    "UNH": "UnitedHealth Group Inc.",
    "MA": "Mastercard Inc.",
    "HD": "The Home Depot Inc.",
    "ADBE": "Adobe Inc.",
    "CRM": "Salesforce Inc.",
    "NFLX": "Netflix Inc.",
    "DIS": "The Walt Disney Company",
    "CSCO": "Cisco Systems Inc.",
    "VZ": "Verizon Communications Inc.",
}

# Index-tracking ETFs shown in the market overview strip
INDEX_NAMES: dict[str, str] = {
    "SPY": "SPDR S&P 500 ETF Trust",
    "DIA": "SPDR Dow Jones Industrial Average ETF Trust",
    "QQQ": "Invesco QQQ Trust",
    "IWM": "iShares Russell 2000 ETF",
}

KNOWN_NAMES: dict[str, str] = {**COMPANY_NAMES, **INDEX_NAMES}

# Symbols shown on the home page, in display order
DEFAULT_SYMBOLS: list[str] = list(COMPANY_NAMES)
TOP_INDICES: list[str] = list(INDEX_NAMES)


def company_name(symbol: str) -> str:
    """Display name for a symbol, falling back to the symbol itself."""
    return KNOWN_NAMES.get(symbol.upper(), symbol)


def match_symbols(query: str, universe: dict[str, str] | None = None) -> list[str]:
    """Symbols whose ticker or company name contains query (case-insensitive)."""
    needle = query.strip().lower()
    if not needle:
        return []
    names = KNOWN_NAMES if universe is None else universe
    return [symbol for symbol, name in names.items() if needle in symbol.lower() or needle in name.lower()]
