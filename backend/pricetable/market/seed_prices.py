"""Seed prices, per-symbol parameters and sector correlations for the simulator."""

# Starting prices for the default watch list
SEED_PRICES: dict[str, float] = {
    "XOM": 48.17,
    "CVX": 112.40,
    "BA": 218.93,
    "CAT": 164.25,
    "GE": 91.80,
    "AAPL": 190.00,
    "MSFT": 420.00,
    "JPM": 195.00,
    "GS": 380.50,
    "TSLA": 250.00,
}

# Per-symbol GBM parameters
# sigma: annualized volatility
# mu: annualized drift
SYMBOL_PARAMS: dict[str, dict[str, float]] = {
    "XOM": {"sigma": 0.24, "mu": 0.04},
    "CVX": {"sigma": 0.23, "mu": 0.04},
    "BA": {"sigma": 0.32, "mu": 0.03},
    "CAT": {"sigma": 0.26, "mu": 0.05},
    "GE": {"sigma": 0.28, "mu": 0.05},
    "AAPL": {"sigma": 0.22, "mu": 0.05},
    "MSFT": {"sigma": 0.20, "mu": 0.05},
    "JPM": {"sigma": 0.18, "mu": 0.04},
    "GS": {"sigma": 0.21, "mu": 0.04},
    "TSLA": {"sigma": 0.50, "mu": 0.03},
}

# Symbols added at runtime without an entry above
DEFAULT_PARAMS: dict[str, float] = {"sigma": 0.25, "mu": 0.05}

SECTORS: dict[str, str] = {
    "XOM": "energy",
    "CVX": "energy",
    "BA": "industrials",
    "CAT": "industrials",
    "GE": "industrials",
    "AAPL": "tech",
    "MSFT": "tech",
    "JPM": "finance",
    "GS": "finance",
}

# Correlation between two symbols of the same sector
INTRA_SECTOR_CORR: dict[str, float] = {
    "energy": 0.7,
    "industrials": 0.5,
    "tech": 0.6,
    "finance": 0.5,
}

CROSS_SECTOR_CORR = 0.3  # Different sectors, or any symbol without a sector
