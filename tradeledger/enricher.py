"""Matching of user fills against builder fills.

Builder fill files carry no trade id, so fills are matched on a composite
key of user, coin, time (to the second), size, price and side.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import NamedTuple

from tradeledger.builder_fill import BuilderFill
from tradeledger.fills import Side, UserFill


class _FillKey(NamedTuple):
    user: str
    coin: str
    time_sec: int
    size: str
    price: str
    is_buy: bool

    @classmethod
    def from_builder_fill(cls, fill: BuilderFill) -> _FillKey:
        return cls(
            user=fill.user.lower(),
            coin=fill.asset.upper(),
            time_sec=fill.timestamp_ms() // 1000,
            size=str(fill.size),
            price=str(fill.price),
            is_buy=fill.side.is_buy(),
        )

    @classmethod
    def from_user_fill(cls, fill: UserFill, user: str) -> _FillKey:
        return cls(
            user=user.lower(),
            coin=fill.asset.upper(),
            time_sec=fill.timestamp_ms // 1000,
            size=str(fill.size),
            price=str(fill.price),
            is_buy=fill.side is Side.BUY,
        )


class FillEnricher:
    """Looks up builder attribution for user fills."""

    def __init__(self, fills: Iterable[BuilderFill] = ()) -> None:
        fills = list(fills)
        self._total_fills = len(fills)
        self._fills_by_key = {_FillKey.from_builder_fill(fill): fill for fill in fills}

    def total_fills(self) -> int:
        """Number of builder fills loaded (duplicates included)."""
        return self._total_fills

    def is_builder_fill(self, fill: UserFill, user: str) -> bool:
        """Whether the fill was routed through the tracked builder."""
        return _FillKey.from_user_fill(fill, user) in self._fills_by_key

    def get_builder_fill(self, fill: UserFill, user: str) -> BuilderFill | None:
        """The matching builder fill, if any."""
        return self._fills_by_key.get(_FillKey.from_user_fill(fill, user))

    def get_builder_fee(self, fill: UserFill, user: str) -> Decimal | None:
        """The builder fee of the matching builder fill, if any."""
        match = self.get_builder_fill(fill, user)
        return None if match is None else match.builder_fee

    def fills_for_user(self, user: str) -> list[BuilderFill]:
        """All indexed builder fills for a user, case-insensitively."""
        user_lower = user.lower()
        return [f for f in self._fills_by_key.values() if f.user.lower() == user_lower]

    def fills_for_asset(self, asset: str) -> list[BuilderFill]:
        """All indexed builder fills for an asset symbol, case-insensitively."""
        symbol = asset.upper()
        return [f for f in self._fills_by_key.values() if f.asset.upper() == symbol]

    def total_builder_fees(self) -> Decimal:
        """Sum of builder fees over the indexed fills."""
        return sum((f.builder_fee for f in self._fills_by_key.values()), Decimal(0))

    def total_volume(self) -> Decimal:
        """Sum of notional values over the indexed fills."""
        return sum((f.notional_value() for f in self._fills_by_key.values()), Decimal(0))