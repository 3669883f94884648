"""Simulated price event source (correlated GBM)."""

from __future__ import annotations

import asyncio
import logging
import math
import random

import numpy as np

from .channel import Channel
from .interface import MarketDataSource
from .models import PriceUpdate
from .seed_prices import (
    CROSS_SECTOR_CORR,
    DEFAULT_PARAMS,
    INTRA_SECTOR_CORR,
    SECTORS,
    SEED_PRICES,
    SYMBOL_PARAMS,
)

logger = logging.getLogger(__name__)


class GBMSimulator:
    """Geometric Brownian Motion over a set of correlated symbols.

        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Z is drawn from a standard normal and correlated across symbols through
    the Cholesky factor of a sector-based correlation matrix. Each symbol also
    has a small per-step chance of a 2-5% shock.
    """

    # One step of 500ms as a fraction of a trading year (252 days * 6.5h)
    TRADING_SECONDS_PER_YEAR = 252 * 6.5 * 3600
    DEFAULT_DT = 0.5 / TRADING_SECONDS_PER_YEAR

    def __init__(
        self,
        symbols: list[str],
        dt: float = DEFAULT_DT,
        event_probability: float = 0.001,
    ) -> None:
        self._dt = dt
        self._event_prob = event_probability
        self._symbols: list[str] = []
        self._prices: dict[str, float] = {}
        self._params: dict[str, dict[str, float]] = {}
        self._cholesky: np.ndarray | None = None

        for symbol in symbols:
            self._track(symbol)
        self._rebuild_cholesky()

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    def step(self) -> dict[str, float]:
        """Advance every symbol by one step. Returns {symbol: new_price}."""
        n = len(self._symbols)
        if n == 0:
            return {}

        z = np.random.standard_normal(n)
        if self._cholesky is not None:
            z = self._cholesky @ z

        result: dict[str, float] = {}
        for i, symbol in enumerate(self._symbols):
            mu = self._params[symbol]["mu"]
            sigma = self._params[symbol]["sigma"]
            drift = (mu - 0.5 * sigma**2) * self._dt
            diffusion = sigma * math.sqrt(self._dt) * z[i]
            self._prices[symbol] *= math.exp(drift + diffusion)

            if random.random() < self._event_prob:
                shock = random.uniform(0.02, 0.05) * random.choice([-1, 1])
                self._prices[symbol] *= 1 + shock
                logger.debug("Shock on %s: %+.1f%%", symbol, shock * 100)

            result[symbol] = round(self._prices[symbol], 2)

        return result

    def add_symbol(self, symbol: str) -> None:
        if symbol in self._prices:
            return
        self._track(symbol)
        self._rebuild_cholesky()

    def remove_symbol(self, symbol: str) -> None:
        if symbol not in self._prices:
            return
        self._symbols.remove(symbol)
        del self._prices[symbol]
        del self._params[symbol]
        self._rebuild_cholesky()

    def get_price(self, symbol: str) -> float | None:
        price = self._prices.get(symbol)
        return round(price, 2) if price is not None else None

    def _track(self, symbol: str) -> None:
        if symbol in self._prices:
            return
        self._symbols.append(symbol)
        self._prices[symbol] = SEED_PRICES.get(symbol, random.uniform(50.0, 300.0))
        self._params[symbol] = SYMBOL_PARAMS.get(symbol, dict(DEFAULT_PARAMS))

    def _rebuild_cholesky(self) -> None:
        n = len(self._symbols)
        if n <= 1:
            self._cholesky = None
            return

        corr = np.eye(n)
        for i in range(n):
            for j in range(i + 1, n):
                rho = self.pairwise_correlation(self._symbols[i], self._symbols[j])
                corr[i, j] = corr[j, i] = rho
        self._cholesky = np.linalg.cholesky(corr)

    @staticmethod
    def pairwise_correlation(a: str, b: str) -> float:
        """Intra-sector correlation for symbols sharing a known sector, else cross-sector."""
        sector = SECTORS.get(a)
        if sector is not None and sector == SECTORS.get(b):
            return INTRA_SECTOR_CORR.get(sector, CROSS_SECTOR_CORR)
        return CROSS_SECTOR_CORR


class SimulatorDataSource(MarketDataSource):
    """Publishes simulated prices on the update channel.

    A background asyncio task steps the GBMSimulator every
    ``update_interval`` seconds and emits one PriceUpdate per symbol.
    """

    def __init__(
        self,
        updates: Channel[PriceUpdate],
        update_interval: float = 0.5,
        event_probability: float = 0.001,
    ) -> None:
        self._updates = updates
        self._interval = update_interval
        self._event_prob = event_probability
        self._sim: GBMSimulator | None = None
        self._task: asyncio.Task | None = None

    async def start(self, symbols: list[str]) -> None:
        self._sim = GBMSimulator(symbols=symbols, event_probability=self._event_prob)
        # Publish seed prices so consumers have data before the first step
        for symbol in self._sim.symbols:
            self._publish(symbol, self._sim.get_price(symbol))
        self._task = asyncio.create_task(self._run_loop(), name="simulator-loop")
        logger.info("Simulator started with %d symbols", len(symbols))

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Simulator stopped")

    async def add_symbol(self, symbol: str) -> None:
        if self._sim:
            self._sim.add_symbol(symbol)
            self._publish(symbol, self._sim.get_price(symbol))
            logger.info("Simulator: added symbol %s", symbol)

    async def remove_symbol(self, symbol: str) -> None:
        if self._sim:
            self._sim.remove_symbol(symbol)
        logger.info("Simulator: removed symbol %s", symbol)

    def get_symbols(self) -> list[str]:
        return self._sim.symbols if self._sim else []

    def _publish(self, symbol: str, price: float | None) -> None:
        if price is not None:
            self._updates.emit(PriceUpdate(symbol=symbol, price=price))

    async def _run_loop(self) -> None:
        while True:
            try:
                if self._sim:
                    for symbol, price in self._sim.step().items():
                        self._publish(symbol, price)
            except Exception:
                logger.exception("Simulator step failed")
            await asyncio.sleep(self._interval)
