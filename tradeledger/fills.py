"""User fills as reported by the exchange API, and their conversion to domain types."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any


class Side(enum.Enum):
    """Trade side of a user fill."""

    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class UserFill:
    """A single trade execution for a user."""

    asset: str
    timestamp_ms: int
    price: Decimal
    size: Decimal
    side: Side
    fee: Decimal
    closed_pnl: Decimal
    trade_id: int
    order_id: int
    crossed: bool
    direction: str


_RAW_SIDES = {
    "B": Side.BUY,
    "Bid": Side.BUY,
    "A": Side.SELL,
    "Ask": Side.SELL,
}


def _decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _side(value: Any) -> Side:
    try:
        return _RAW_SIDES[value]
    except (KeyError, TypeError):
        raise ValueError(f"invalid side: {value!r}") from None


def convert_fill(raw: Mapping[str, Any]) -> UserFill:
    """Convert one raw API fill (``coin``, ``px``, ``sz``, ``side``, ...) to a UserFill."""
    return UserFill(
        asset=str(raw["coin"]),
        timestamp_ms=int(raw["time"]),
        price=_decimal(raw["px"]),
        size=_decimal(raw["sz"]),
        side=_side(raw["side"]),
        fee=_decimal(raw["fee"]),
        closed_pnl=_decimal(raw["closedPnl"]),
        trade_id=int(raw["tid"]),
        order_id=int(raw["oid"]),
        crossed=bool(raw["crossed"]),
        direction=str(raw["dir"]),
    )


def convert_fills(raws: Iterable[Mapping[str, Any]]) -> list[UserFill]:
    """Convert a sequence of raw API fills, keeping their order."""
    return [convert_fill(raw) for raw in raws]