"""Massive (Polygon.io) snapshot poller as a price event source."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .channel import Channel
from .interface import MarketDataSource
from .models import PriceUpdate

logger = logging.getLogger(__name__)


class MassiveDataSource(MarketDataSource):
    """MarketDataSource backed by the Massive REST API.

    Polls GET /v2/snapshot/locale/us/markets/stocks/tickers for all watched
    symbols in one call and emits a PriceUpdate per last trade.

    Rate limits:
      - Free tier: 5 req/min, poll every 15s (default)
      - Paid tiers: poll every 2-5s
    """

    def __init__(
        self,
        api_key: str,
        updates: Channel[PriceUpdate],
        poll_interval: float = 15.0,
    ) -> None:
        self._api_key = api_key
        self._updates = updates
        self._interval = poll_interval
        self._symbols: list[str] = []
        self._task: asyncio.Task | None = None
        self._client: Any = None

    async def start(self, symbols: list[str]) -> None:
        # Imported here so the simulator works without the massive package
        from massive import RESTClient

        self._client = RESTClient(api_key=self._api_key)
        self._symbols = [_normalize(s) for s in symbols]

        await self._poll_once()

        self._task = asyncio.create_task(self._poll_loop(), name="massive-poller")
        logger.info(
            "Massive poller started: %d symbols, %.1fs interval",
            len(self._symbols),
            self._interval,
        )

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._client = None
        logger.info("Massive poller stopped")

    async def add_symbol(self, symbol: str) -> None:
        symbol = _normalize(symbol)
        if symbol not in self._symbols:
            self._symbols.append(symbol)
            logger.info("Massive: added symbol %s (next poll)", symbol)

    async def remove_symbol(self, symbol: str) -> None:
        symbol = _normalize(symbol)
        self._symbols = [s for s in self._symbols if s != symbol]
        logger.info("Massive: removed symbol %s", symbol)

    def get_symbols(self) -> list[str]:
        return list(self._symbols)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self._poll_once()

    async def _poll_once(self) -> None:
        """Fetch one round of snapshots and emit an update for each."""
        if not self._symbols or not self._client:
            return

        try:
            # RESTClient is synchronous
            snapshots = await asyncio.to_thread(self._fetch_snapshots)
        except Exception as e:
            # 401, 429 and network errors alike: retry on the next interval
            logger.error("Massive poll failed: %s", e)
            return

        emitted = 0
        for snap in snapshots:
            try:
                update = PriceUpdate(symbol=snap.ticker, price=float(snap.last_trade.price))
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning("Skipping snapshot for %s: %s", getattr(snap, "ticker", "???"), e)
                continue
            self._updates.emit(update)
            emitted += 1
        logger.debug("Massive poll: emitted %d/%d symbols", emitted, len(self._symbols))

    def _fetch_snapshots(self) -> list:
        from massive.rest.models import SnapshotMarketType

        return self._client.get_snapshot_all(
            market_type=SnapshotMarketType.STOCKS,
            tickers=self._symbols,
        )


def _normalize(symbol: str) -> str:
    return symbol.upper().strip()
