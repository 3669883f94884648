"""Factory for creating price event sources."""

from __future__ import annotations

import logging
import os

from .channel import Channel
from .interface import MarketDataSource
from .models import PriceUpdate
from .seed_prices import SEED_PRICES

logger = logging.getLogger(__name__)


def create_market_data_source(updates: Channel[PriceUpdate]) -> MarketDataSource:
    """Create the event source selected by environment variables.

    - MASSIVE_API_KEY set and non-blank: MassiveDataSource, polling every
      MASSIVE_POLL_INTERVAL seconds (default 15)
    - Otherwise: SimulatorDataSource, stepping every
      SIMULATOR_UPDATE_INTERVAL seconds (default 0.5)

    Returns an unstarted source. Caller must await source.start(symbols).
    """
    api_key = os.environ.get("MASSIVE_API_KEY", "").strip()

    if api_key:
        from .massive_client import MassiveDataSource

        interval = _float_env("MASSIVE_POLL_INTERVAL", 15.0)
        logger.info("Price source: Massive API (every %.1fs)", interval)
        return MassiveDataSource(api_key=api_key, updates=updates, poll_interval=interval)
    else:
        from .simulator import SimulatorDataSource

        interval = _float_env("SIMULATOR_UPDATE_INTERVAL", 0.5)
        logger.info("Price source: GBM simulator (every %.2fs)", interval)
        return SimulatorDataSource(updates=updates, update_interval=interval)


def watched_symbols() -> list[str]:
    """Symbols from PRICETABLE_SYMBOLS (comma-separated), or the seed list."""
    raw = os.environ.get("PRICETABLE_SYMBOLS", "")
    symbols = [s.strip().upper() for s in raw.split(",") if s.strip()]
    return symbols or list(SEED_PRICES)


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default
