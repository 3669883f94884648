"""Tests for application wiring."""

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from pricetable.main import create_app
from pricetable.market.channel import Observer
from pricetable.market.simulator import SimulatorDataSource


def _fast_simulator(updates):
    return SimulatorDataSource(updates=updates, update_interval=0.01)


class TestApp:
    """Lifespan and end-to-end behaviour of the assembled app."""

    def test_lifespan_starts_and_stops_source(self):
        with patch.dict(os.environ, {"PRICETABLE_SYMBOLS": "XOM,BA"}, clear=True):
            app = create_app(_fast_simulator)
            with TestClient(app):
                assert app.state.source.get_symbols() == ["XOM", "BA"]
                assert app.state.aggregator.connected
                task = app.state.source._task
                assert task is not None and not task.done()

        assert app.state.source._task is None
        assert not app.state.aggregator.connected
        assert app.state.updates.subscriber_count == 0

    def test_prices_accumulate_and_reset(self):
        with patch.dict(os.environ, {"PRICETABLE_SYMBOLS": "XOM,BA"}, clear=True):
            app = create_app(_fast_simulator)
            with TestClient(app) as client:
                # Seed prices are published during startup
                assert set(client.get("/api/prices").json()) == {"XOM", "BA"}

                seen = []
                subscription = app.state.aggregator.subscribe(Observer.of(seen.append))
                client.portal.call(app.state.source.stop)

                assert client.post("/api/prices/reset").status_code == 202
                assert seen[-1] == {}
                assert client.get("/api/prices").json() == {}
                subscription.unsubscribe()

    def test_failed_start_releases_upstream(self):
        app = create_app(_fast_simulator)

        with patch.object(app.state.source, "start", side_effect=RuntimeError("feed unavailable")):
            with pytest.raises(RuntimeError):
                with TestClient(app):
                    pass

        assert not app.state.aggregator.connected
        assert app.state.updates.subscriber_count == 0
        assert app.state.resets.subscriber_count == 0

    def test_default_factory_uses_environment(self):
        with patch.dict(os.environ, {}, clear=True):
            app = create_app()
        assert isinstance(app.state.source, SimulatorDataSource)
