"""HTTP surface: SSE snapshot stream, current table and reset signal."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from .aggregator import PriceAggregator
from .channel import Channel, Observer
from .models import RESET, PriceTable, Reset

logger = logging.getLogger(__name__)


def create_stream_router(aggregator: PriceAggregator, resets: Channel[Reset]) -> APIRouter:
    """Create the price router bound to an aggregator and the reset channel."""
    router = APIRouter(prefix="/api", tags=["prices"])

    @router.get("/stream/prices")
    async def stream_prices(request: Request) -> StreamingResponse:
        """SSE endpoint for live price tables.

        Each connection is its own aggregator subscriber. The first event is
        the current table, then one event per update or reset:

            data: {"XOM": 48.17, "BA": 218.93}

        Includes a retry directive so EventSource reconnects on its own.
        """
        return StreamingResponse(
            _generate_events(aggregator, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    @router.get("/prices")
    async def get_prices() -> dict[str, float]:
        """The table as of now."""
        return current_table(aggregator)

    @router.post("/prices/reset", status_code=202)
    async def reset_prices() -> JSONResponse:
        """Emit one reset signal; every subscriber receives an empty table."""
        resets.emit(RESET)
        logger.info("Reset signal emitted via API")
        return JSONResponse({"status": "reset"}, status_code=202)

    return router


def current_table(aggregator: PriceAggregator) -> dict[str, float]:
    """Read the table the way a new subscriber would see it."""
    received: list[PriceTable] = []
    subscription = aggregator.subscribe(Observer.of(received.append))
    subscription.unsubscribe()
    # Another thread may be draining; fall back to the cell itself
    return dict(received[0] if received else aggregator.current)


async def _generate_events(
    aggregator: PriceAggregator,
    request: Request,
    interval: float = 1.0,
) -> AsyncGenerator[str, None]:
    """Yield SSE frames for every snapshot until the client goes away.

    Snapshots are handed from the aggregator to the event loop through an
    asyncio.Queue; ``interval`` bounds how long we wait before checking for
    a disconnected client.
    """
    yield "retry: 1000\n\n"

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[tuple[str, object]] = asyncio.Queue()
    subscription = aggregator.subscribe(
        Observer.of(
            lambda table: loop.call_soon_threadsafe(queue.put_nowait, ("next", dict(table))),
            lambda error: loop.call_soon_threadsafe(queue.put_nowait, ("error", error)),
            lambda: loop.call_soon_threadsafe(queue.put_nowait, ("completed", None)),
        )
    )
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            try:
                kind, payload = await asyncio.wait_for(queue.get(), timeout=interval)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    logger.info("SSE client disconnected: %s", client_ip)
                    break
                continue

            if kind == "next":
                yield f"data: {json.dumps(payload)}\n\n"
            elif kind == "error":
                yield f"event: error\ndata: {json.dumps({'error': str(payload)})}\n\n"
                break
            else:
                break
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
    finally:
        subscription.unsubscribe()
