"""Fixtures for price table tests."""

import pytest

from pricetable.market.aggregator import PriceAggregator
from pricetable.market.channel import Channel, Observer


class Recorder(Observer):
    """Observer that records every notification it receives."""

    def __init__(self) -> None:
        self.values = []
        self.errors = []
        self.completed = 0

    def on_next(self, value) -> None:
        self.values.append(value)

    def on_error(self, error) -> None:
        self.errors.append(error)

    def on_completed(self) -> None:
        self.completed += 1

    @property
    def last(self):
        return self.values[-1]


@pytest.fixture
def updates():
    return Channel("test-updates")


@pytest.fixture
def resets():
    return Channel("test-resets")


@pytest.fixture
def aggregator(updates, resets):
    return PriceAggregator(updates, resets)


@pytest.fixture
def recorder():
    """Factory for fresh Recorder observers."""
    return Recorder
