"""Abstract interface for price event sources."""

from __future__ import annotations

from abc import ABC, abstractmethod


class MarketDataSource(ABC):
    """Contract for providers that feed the price update channel.

    Implementations emit PriceUpdate events on their own schedule. They never
    read or write the price table; the aggregator owns it.

    Lifecycle:
        source = create_market_data_source(updates)
        await source.start(["XOM", "BA", ...])
        await source.add_symbol("CVX")
        await source.remove_symbol("BA")
        await source.stop()
    """

    @abstractmethod
    async def start(self, symbols: list[str]) -> None:
        """Begin emitting price updates for the given symbols.

        Must be called exactly once.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop emitting and release resources. Safe to call more than once."""

    @abstractmethod
    async def add_symbol(self, symbol: str) -> None:
        """Start emitting updates for a symbol. No-op if already tracked."""

    @abstractmethod
    async def remove_symbol(self, symbol: str) -> None:
        """Stop emitting updates for a symbol. No-op if not tracked.

        The last published price stays in the table until the next reset.
        """

    @abstractmethod
    def get_symbols(self) -> list[str]:
        """Return the symbols currently being emitted."""
