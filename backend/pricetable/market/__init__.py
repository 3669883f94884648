"""Price table subsystem.

Public API:
    PriceUpdate         - Immutable price event dataclass
    RESET               - Unit signal that clears the table
    Channel             - Push channel for price updates and resets
    Observer            - Receiver of channel / aggregator notifications
    PriceAggregator     - Shared, stateful symbol -> price table stream
    fold                - Pure reducer behind the aggregator
    MarketDataSource    - Abstract interface for price event sources
    create_market_data_source - Factory that selects simulator or Massive
    create_stream_router - FastAPI router factory (SSE, current table, reset)
"""

from .aggregator import PriceAggregator, fold
from .channel import Channel, Observer, Subscription
from .factory import create_market_data_source
from .interface import MarketDataSource
from .models import EMPTY_TABLE, RESET, PriceTable, PriceUpdate, Reset
from .stream import create_stream_router

__all__ = [
    "PriceUpdate",
    "PriceTable",
    "Reset",
    "RESET",
    "EMPTY_TABLE",
    "Channel",
    "Observer",
    "Subscription",
    "PriceAggregator",
    "fold",
    "MarketDataSource",
    "create_market_data_source",
    "create_stream_router",
]
