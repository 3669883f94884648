"""Pytest configuration and fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def _debug_logging(caplog):
    """Capture pricetable debug logs so failures show the event trail."""
    caplog.set_level(logging.DEBUG, logger="pricetable")
