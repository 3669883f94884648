"""Data models for the price table."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Union

# Immutable symbol -> price mapping handed to consumers
PriceTable = Mapping[str, float]

EMPTY_TABLE: PriceTable = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class PriceUpdate:
    """Immutable price event for a single symbol."""

    symbol: str
    price: float

    def to_dict(self) -> dict:
        """Serialize for JSON transmission."""
        return {"symbol": self.symbol, "price": self.price}


class Reset:
    """Unit signal that clears the price table. Use the ``RESET`` singleton."""

    __slots__ = ()
    _instance: Reset | None = None

    def __new__(cls) -> Reset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "RESET"


RESET = Reset()

PriceEvent = Union[PriceUpdate, Reset]
