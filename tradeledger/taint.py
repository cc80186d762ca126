"""Taint detection for builder-based competition enforcement.

A user is tainted when any fill made while a position is open (or that opens
one) did not go through the target builder.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from tradeledger.fills import Side, UserFill

_ZERO = Decimal(0)


@dataclass
class TaintAnalysisResult:
    """Outcome of analysing a user's fills for taint."""

    tainted: bool = False
    tainted_assets: list[str] = field(default_factory=list)
    total_fills: int = 0
    builder_fills: int = 0
    tainted_fills: int = 0
    first_taint_timestamp_ms: int | None = None


class PositionLifecycleTracker:
    """Tracks net position per asset and flags non-builder fills in open positions."""

    def __init__(self) -> None:
        self._positions: dict[str, Decimal] = {}
        self._tainted_assets: dict[str, bool] = {}
        self._first_taint_ms: int | None = None
        self._total_fills = 0
        self._builder_fills = 0
        self._tainted_fills = 0

    def process_fill(self, fill: UserFill, is_builder_fill: bool) -> bool:
        """Apply a fill to the position state; return True if it caused taint."""
        self._total_fills += 1

        current = self._positions.get(fill.asset, _ZERO)
        signed_size = fill.size if fill.side is Side.BUY else -fill.size
        new_position = current + signed_size
        self._positions[fill.asset] = new_position

        if is_builder_fill:
            self._builder_fills += 1
            return False

        if current != _ZERO or new_position != _ZERO:
            self._tainted_fills += 1
            self._tainted_assets[fill.asset] = True
            if self._first_taint_ms is None:
                self._first_taint_ms = fill.timestamp_ms
            return True

        return False

    def is_tainted(self) -> bool:
        """Whether any asset has been tainted."""
        return bool(self._tainted_assets)

    def result(self) -> TaintAnalysisResult:
        """Summarise the analysis so far."""
        return TaintAnalysisResult(
            tainted=self.is_tainted(),
            tainted_assets=list(self._tainted_assets),
            total_fills=self._total_fills,
            builder_fills=self._builder_fills,
            tainted_fills=self._tainted_fills,
            first_taint_timestamp_ms=self._first_taint_ms,
        )

    def get_position(self, asset: str) -> Decimal:
        """Current net position for an asset (zero if never traded)."""
        return self._positions.get(asset, _ZERO)


def analyze_user_taint(
    fills: Iterable[UserFill], is_builder_fill: Callable[[UserFill], bool]
) -> TaintAnalysisResult:
    """Analyse fills for taint, processing them in timestamp order."""
    tracker = PositionLifecycleTracker()
    for fill in sorted(fills, key=lambda f: f.timestamp_ms):
        tracker.process_fill(fill, is_builder_fill(fill))
    return tracker.result()


def analyze_user_taint_with_ids(
    fills: Iterable[UserFill], builder_trade_ids: Collection[int]
) -> TaintAnalysisResult:
    """Analyse fills for taint, treating fills whose trade id is given as builder fills."""
    return analyze_user_taint(fills, lambda fill: fill.trade_id in builder_trade_ids)