"""Seed prices and per-symbol volatility for the offline quote simulator."""

# Starting prices for the built-in universe
SEED_PRICES: dict[str, float] = {
    "AAPL": 190.00,
    "MSFT": 420.00,
    "GOOGL": 175.00,
    "AMZN": 185.00,
    "NVDA": 800.00,
    "META": 500.00,
    "TSLA": 250.00,
    "JPM": 195.00,
    "V": 280.00,
    "PG": 165.00,
    "JNJ": 155.00,
    "UNH": 520.00,
    "MA": 460.00,
    "HD": 350.00,
    "ADBE": 480.00,
    "CRM": 290.00,
    "NFLX": 600.00,
    "DIS": 110.00,
    "CSCO": 50.00,
    "VZ": 40.00,
    "SPY": 510.00,
    "DIA": 390.00,
    "QQQ": 440.00,
    "IWM": 205.00,
}

# Annualized volatility; symbols not listed use DEFAULT_SIGMA
SIGMAS: dict[str, float] = {
    "TSLA": 0.50,
    "NVDA": 0.40,
    "NFLX": 0.35,
    "META": 0.30,
    "AMZN": 0.28,
    "JPM": 0.18,
    "V": 0.17,
    "MA": 0.17,
    "PG": 0.14,
    "JNJ": 0.14,
    "VZ": 0.16,
    "SPY": 0.15,
    "DIA": 0.14,
    "QQQ": 0.20,
    "IWM": 0.22,
}
DEFAULT_SIGMA = 0.25
DRIFT = 0.05

# Symbols in the same sector move together
SECTORS: dict[str, set[str]] = {
    "tech": {"AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "ADBE", "CRM", "NFLX", "CSCO"},
    "finance": {"JPM", "V", "MA"},
    "defensive": {"PG", "JNJ", "UNH", "VZ"},
    "index": {"SPY", "DIA", "QQQ", "IWM"},
}
INTRA_SECTOR_CORR = 0.6
CROSS_SECTOR_CORR = 0.3
