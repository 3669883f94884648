"""Application wiring: channels, aggregator, price source and HTTP routes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .market import (
    Channel,
    MarketDataSource,
    Observer,
    PriceAggregator,
    PriceTable,
    PriceUpdate,
    Reset,
    create_market_data_source,
    create_stream_router,
)
from .market.factory import watched_symbols

logger = logging.getLogger(__name__)


def create_app(
    source_factory: Callable[[Channel[PriceUpdate]], MarketDataSource] = create_market_data_source,
) -> FastAPI:
    """Build the FastAPI app around a source built by ``source_factory``."""
    updates: Channel[PriceUpdate] = Channel("price-updates")
    resets: Channel[Reset] = Channel("price-resets")
    aggregator = PriceAggregator(updates, resets)
    source = source_factory(updates)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Keep the table alive between SSE clients
        keepalive = aggregator.subscribe(Observer.of(_on_snapshot))
        try:
            symbols = watched_symbols()
            await source.start(symbols)
            logger.info("Price table service started (%d symbols)", len(symbols))
            yield
        finally:
            await source.stop()
            keepalive.unsubscribe()
            logger.info("Price table service stopped")

    app = FastAPI(title="pricetable", lifespan=lifespan)
    app.state.updates = updates
    app.state.resets = resets
    app.state.aggregator = aggregator
    app.state.source = source
    app.include_router(create_stream_router(aggregator, resets))
    return app


def _on_snapshot(table: PriceTable) -> None:
    logger.debug("Price table now has %d symbols", len(table))
