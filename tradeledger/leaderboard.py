"""Leaderboard calculation and ranking for trading competitions."""

from __future__ import annotations

import abc
import asyncio
import enum
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from tradeledger.enricher import FillEnricher
from tradeledger.errors import IndexerError
from tradeledger.fills import UserFill
from tradeledger.taint import TaintAnalysisResult, analyze_user_taint

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)
_HUNDRED = Decimal(100)


class LeaderboardMetric(enum.Enum):
    """Metric the leaderboard is ranked by."""

    VOLUME = "volume"
    PNL = "pnl"
    RETURN_PCT = "returnPct"

    @classmethod
    def parse(cls, text: str) -> LeaderboardMetric | None:
        """Parse a metric name case-insensitively; return None if unknown."""
        return _METRIC_NAMES.get(text.lower())

    def as_str(self) -> str:
        """Canonical name of the metric."""
        return self.value


_METRIC_NAMES = {
    "volume": LeaderboardMetric.VOLUME,
    "pnl": LeaderboardMetric.PNL,
    "returnpct": LeaderboardMetric.RETURN_PCT,
    "return_pct": LeaderboardMetric.RETURN_PCT,
    "return": LeaderboardMetric.RETURN_PCT,
}


@dataclass
class UserStats:
    """Per-user statistics used for ranking."""

    user: str
    volume: Decimal = _ZERO
    realized_pnl: Decimal = _ZERO
    return_pct: Decimal | None = None
    trade_count: int = 0
    builder_fill_count: int = 0
    taint_result: TaintAnalysisResult = field(default_factory=TaintAnalysisResult)

    def metric_value(self, metric: LeaderboardMetric) -> Decimal:
        """Value of the given ranking metric for this user."""
        if metric is LeaderboardMetric.VOLUME:
            return self.volume
        if metric is LeaderboardMetric.PNL:
            return self.realized_pnl
        return self.return_pct if self.return_pct is not None else _ZERO


@dataclass(frozen=True)
class LeaderboardEntry:
    """A ranked leaderboard row."""

    rank: int
    user: str
    metric_value: Decimal
    volume: Decimal
    realized_pnl: Decimal
    return_pct: Decimal | None
    trade_count: int
    builder_fill_count: int
    tainted: bool


@dataclass(frozen=True)
class LeaderboardConfig:
    """Settings for a leaderboard calculation."""

    metric: LeaderboardMetric = LeaderboardMetric.VOLUME
    target_builder: str | None = None
    builder_only: bool = False
    max_start_capital: Decimal | None = None
    coin: str | None = None
    from_ms: int | None = None
    to_ms: int | None = None


class BuilderFillChecker(abc.ABC):
    """Decides whether a user's fill went through the target builder."""

    @abc.abstractmethod
    def is_builder_fill(self, fill: UserFill, user: str) -> bool:
        """Whether the fill for this user is a builder fill."""


class NoBuilderChecker(BuilderFillChecker):
    """Checker for when no builder is configured: nothing is a builder fill."""

    def is_builder_fill(self, fill: UserFill, user: str) -> bool:
        return False


class FillEnricherChecker(BuilderFillChecker):
    """Checker backed by downloaded builder fills."""

    def __init__(self, enricher: FillEnricher) -> None:
        self._enricher = enricher

    def total_fills(self) -> int:
        """Number of builder fills loaded in the enricher."""
        return self._enricher.total_fills()

    def is_builder_fill(self, fill: UserFill, user: str) -> bool:
        return self._enricher.is_builder_fill(fill, user)


def calculate_user_stats(
    user: str,
    fills: Iterable[UserFill],
    builder_checker: BuilderFillChecker,
    max_start_capital: Decimal | None = None,
    coin_filter: str | None = None,
    builder_only: bool = False,
) -> UserStats:
    """Compute volume, PnL, return and taint for one user.

    With ``builder_only`` only builder fills count toward volume, PnL and
    trade count; taint is always analysed over all (coin-filtered) fills.
    """
    selected = [f for f in fills if coin_filter is None or f.asset == coin_filter]

    volume = _ZERO
    realized_pnl = _ZERO
    builder_fill_count = 0
    counted_fills = 0

    for fill in selected:
        is_builder = builder_checker.is_builder_fill(fill, user)
        if is_builder:
            builder_fill_count += 1
        if not builder_only or is_builder:
            volume += fill.price * fill.size
            realized_pnl += fill.closed_pnl - fill.fee
            counted_fills += 1

    taint_result = analyze_user_taint(
        selected, lambda fill: builder_checker.is_builder_fill(fill, user)
    )

    return_pct: Decimal | None = None
    if max_start_capital is not None:
        if max_start_capital > _ZERO:
            return_pct = (realized_pnl / max_start_capital) * _HUNDRED
        else:
            return_pct = _ZERO

    return UserStats(
        user=user,
        volume=volume,
        realized_pnl=realized_pnl,
        return_pct=return_pct,
        trade_count=counted_fills,
        builder_fill_count=builder_fill_count,
        taint_result=taint_result,
    )


async def _fetch(indexer: Any, user: str, config: LeaderboardConfig) -> list[UserFill] | IndexerError:
    try:
        return await indexer.get_user_fills(user, config.from_ms, config.to_ms)
    except IndexerError as exc:
        return exc


async def calculate_leaderboard(
    indexer: Any,
    users: Sequence[str],
    config: LeaderboardConfig,
    builder_checker: BuilderFillChecker,
) -> list[UserStats]:
    """Fetch fills for all users concurrently and compute their stats.

    ``indexer`` must provide ``async get_user_fills(user, from_ms, to_ms)``.
    Users whose fills cannot be fetched are included with zero stats.
    """
    results = await asyncio.gather(*(_fetch(indexer, user, config) for user in users))

    stats = []
    for user, result in zip(users, results):
        if isinstance(result, IndexerError):
            logger.warning("Failed to fetch fills for user %s: %s", user, result)
            stats.append(
                UserStats(
                    user=user,
                    return_pct=None if config.max_start_capital is None else _ZERO,
                )
            )
            continue
        stats.append(
            calculate_user_stats(
                user,
                result,
                builder_checker,
                config.max_start_capital,
                config.coin,
                config.builder_only,
            )
        )
    return stats


def rank_leaderboard(
    stats: Iterable[UserStats],
    metric: LeaderboardMetric,
    builder_only: bool = False,
) -> list[LeaderboardEntry]:
    """Rank users by the metric, highest first; ties keep their input order.

    Builder-only filtering happens when stats are calculated, so every user
    is ranked here regardless of ``builder_only``.
    """
    ordered = sorted(stats, key=lambda s: s.metric_value(metric), reverse=True)
    return [
        LeaderboardEntry(
            rank=rank,
            user=s.user,
            metric_value=s.metric_value(metric),
            volume=s.volume,
            realized_pnl=s.realized_pnl,
            return_pct=s.return_pct,
            trade_count=s.trade_count,
            builder_fill_count=s.builder_fill_count,
            tainted=s.taint_result.tainted,
        )
        for rank, s in enumerate(ordered, start=1)
    ]