"""Tests for the SSE stream and price routes."""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pricetable.market.models import PriceUpdate
from pricetable.market.stream import _generate_events, create_stream_router, current_table


class _FakeRequest:
    """Just enough of starlette's Request for the event generator."""

    def __init__(self) -> None:
        self.client = None
        self.disconnected = False

    async def is_disconnected(self) -> bool:
        return self.disconnected


def _payload(frame: str) -> dict:
    assert frame.startswith("data: ")
    return json.loads(frame[len("data: "):])


@pytest.mark.asyncio
class TestGenerateEvents:
    """Tests for the SSE event generator."""

    async def test_streams_snapshots_in_order(self, aggregator, updates, resets):
        events = _generate_events(aggregator, _FakeRequest(), interval=0.01)

        assert await events.__anext__() == "retry: 1000\n\n"
        assert _payload(await events.__anext__()) == {}

        updates.emit(PriceUpdate("XOM", 48.17))
        updates.emit(PriceUpdate("BA", 218.93))
        resets.emit(None)

        assert _payload(await events.__anext__()) == {"XOM": 48.17}
        assert _payload(await events.__anext__()) == {"XOM": 48.17, "BA": 218.93}
        assert _payload(await events.__anext__()) == {}

        await events.aclose()
        assert aggregator.subscriber_count == 0

    async def test_first_event_is_current_table(self, aggregator, updates, recorder):
        aggregator.subscribe(recorder())
        updates.emit(PriceUpdate("XOM", 48.17))

        events = _generate_events(aggregator, _FakeRequest(), interval=0.01)
        await events.__anext__()
        assert _payload(await events.__anext__()) == {"XOM": 48.17}
        await events.aclose()

    async def test_disconnect_unsubscribes(self, aggregator, updates):
        request = _FakeRequest()
        events = _generate_events(aggregator, request, interval=0.01)
        await events.__anext__()
        await events.__anext__()
        assert aggregator.subscriber_count == 1

        request.disconnected = True
        with pytest.raises(StopAsyncIteration):
            await events.__anext__()

        assert aggregator.subscriber_count == 0
        assert updates.subscriber_count == 0

    async def test_upstream_error_ends_stream(self, aggregator, updates):
        events = _generate_events(aggregator, _FakeRequest(), interval=0.01)
        await events.__anext__()
        await events.__anext__()

        updates.error(ConnectionError("feed down"))

        frame = await events.__anext__()
        assert frame.startswith("event: error\n")
        assert "feed down" in frame
        with pytest.raises(StopAsyncIteration):
            await events.__anext__()

    async def test_upstream_completion_ends_stream(self, aggregator, resets):
        events = _generate_events(aggregator, _FakeRequest(), interval=0.01)
        await events.__anext__()
        await events.__anext__()

        resets.complete()

        with pytest.raises(StopAsyncIteration):
            await events.__anext__()


class TestPriceRoutes:
    """Tests for the non-streaming routes."""

    @pytest.fixture
    def client(self, aggregator, resets):
        app = FastAPI()
        app.include_router(create_stream_router(aggregator, resets))
        return TestClient(app)

    def test_get_prices_returns_current_table(self, client, aggregator, updates, recorder):
        aggregator.subscribe(recorder())
        updates.emit(PriceUpdate("XOM", 48.17))

        response = client.get("/api/prices")

        assert response.status_code == 200
        assert response.json() == {"XOM": 48.17}

    def test_get_prices_without_subscribers_is_empty(self, client, updates):
        updates.emit(PriceUpdate("XOM", 48.17))
        assert client.get("/api/prices").json() == {}

    def test_reset_endpoint_emits_reset(self, client, aggregator, updates, recorder):
        rec = recorder()
        aggregator.subscribe(rec)
        updates.emit(PriceUpdate("XOM", 48.17))

        response = client.post("/api/prices/reset")

        assert response.status_code == 202
        assert response.json() == {"status": "reset"}
        assert rec.last == {}

    def test_current_table_leaves_subscribers_untouched(self, aggregator, updates, recorder):
        aggregator.subscribe(recorder())
        updates.emit(PriceUpdate("BA", 218.93))

        assert current_table(aggregator) == {"BA": 218.93}
        assert aggregator.subscriber_count == 1
