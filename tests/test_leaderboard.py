from datetime import datetime, timezone
from decimal import Decimal

import pytest

from tradeledger.builder_fill import BuilderFill, BuilderFillSide
from tradeledger.enricher import FillEnricher
from tradeledger.errors import IndexerError
from tradeledger.fills import Side, UserFill
from tradeledger.leaderboard import (
    BuilderFillChecker,
    FillEnricherChecker,
    LeaderboardConfig,
    LeaderboardMetric,
    NoBuilderChecker,
    UserStats,
    calculate_leaderboard,
    calculate_user_stats,
    rank_leaderboard,
)
from tradeledger.taint import TaintAnalysisResult

D = Decimal


class _TradeIdChecker(BuilderFillChecker):
    def __init__(self, ids):
        self.ids = set(ids)

    def is_builder_fill(self, fill, user):
        return fill.trade_id in self.ids


def make_fill(asset, side, price, size, fee, closed_pnl, trade_id, timestamp_ms):
    return UserFill(
        asset=asset,
        timestamp_ms=timestamp_ms,
        price=D(price),
        size=D(size),
        side=side,
        fee=D(fee),
        closed_pnl=D(closed_pnl),
        trade_id=trade_id,
        order_id=trade_id,
        crossed=True,
        direction="Test",
    )


def two_btc_fills():
    return [
        make_fill("BTC", Side.BUY, "50000", "0.1", "5", "0", 1, 1000),
        make_fill("BTC", Side.SELL, "51000", "0.1", "5.1", "100", 2, 2000),
    ]


def stats(user, volume, pnl, trades, builder, tainted=False):
    return UserStats(
        user=user,
        volume=D(volume),
        realized_pnl=D(pnl),
        return_pct=None,
        trade_count=trades,
        builder_fill_count=builder,
        taint_result=TaintAnalysisResult(tainted=tainted),
    )


def test_metric_from_str():
    assert LeaderboardMetric.parse("volume") is LeaderboardMetric.VOLUME
    assert LeaderboardMetric.parse("pnl") is LeaderboardMetric.PNL
    assert LeaderboardMetric.parse("returnPct") is LeaderboardMetric.RETURN_PCT
    assert LeaderboardMetric.parse("return_pct") is LeaderboardMetric.RETURN_PCT
    assert LeaderboardMetric.parse("invalid") is None


def test_metric_as_str_round_trip():
    for metric in LeaderboardMetric:
        assert LeaderboardMetric.parse(metric.as_str()) is metric
    assert LeaderboardMetric.RETURN_PCT.as_str() == "returnPct"


def test_calculate_user_stats_volume():
    s = calculate_user_stats("0xuser", two_btc_fills(), _TradeIdChecker([1, 2]), None, None, False)
    assert s.volume == D("10100")
    assert s.trade_count == 2
    assert s.builder_fill_count == 2
    assert not s.taint_result.tainted


def test_calculate_user_stats_pnl():
    s = calculate_user_stats("0xuser", two_btc_fills(), _TradeIdChecker([1, 2]), None, None, False)
    assert s.realized_pnl == D("89.9")


def test_calculate_user_stats_return_pct():
    s = calculate_user_stats(
        "0xuser", two_btc_fills(), _TradeIdChecker([1, 2]), D("1000"), None, False
    )
    assert s.return_pct == D("8.99")


def test_return_pct_zero_capital_is_zero():
    s = calculate_user_stats("0xuser", two_btc_fills(), _TradeIdChecker([1, 2]), D(0), None, False)
    assert s.return_pct == D(0)


def test_calculate_user_stats_with_taint():
    s = calculate_user_stats("0xuser", two_btc_fills(), _TradeIdChecker([1]), None, None, False)
    assert s.taint_result.tainted
    assert s.taint_result.builder_fills == 1
    assert s.taint_result.tainted_fills == 1
    assert s.builder_fill_count == 1


def test_calculate_user_stats_coin_filter():
    fills = [
        make_fill("BTC", Side.BUY, "50000", "0.1", "5", "0", 1, 1000),
        make_fill("ETH", Side.BUY, "3000", "1", "3", "0", 2, 1500),
        make_fill("BTC", Side.SELL, "51000", "0.1", "5.1", "100", 3, 2000),
    ]
    s = calculate_user_stats("0xuser", fills, _TradeIdChecker([1, 2, 3]), None, "BTC", False)
    assert s.volume == D("10100")
    assert s.trade_count == 2


def test_no_builder_checker():
    s = calculate_user_stats("0xuser", two_btc_fills(), NoBuilderChecker(), None, None, False)
    assert s.taint_result.tainted
    assert s.builder_fill_count == 0


def test_builder_only_mode_filters_fills():
    checker = _TradeIdChecker([1])
    all_stats = calculate_user_stats("0xuser", two_btc_fills(), checker, None, None, False)
    assert all_stats.volume == D("10100")
    assert all_stats.trade_count == 2

    builder_stats = calculate_user_stats("0xuser", two_btc_fills(), checker, None, None, True)
    assert builder_stats.volume == D("5000")
    assert builder_stats.trade_count == 1
    assert builder_stats.builder_fill_count == 1


def test_rank_leaderboard_by_volume():
    ranked = rank_leaderboard(
        [
            stats("user1", "1000", "50", 5, 5),
            stats("user2", "5000", "20", 10, 10),
            stats("user3", "2500", "100", 8, 8),
        ],
        LeaderboardMetric.VOLUME,
        False,
    )
    assert [(e.user, e.rank) for e in ranked] == [("user2", 1), ("user3", 2), ("user1", 3)]
    assert ranked[0].metric_value == D("5000")


def test_rank_leaderboard_by_pnl():
    ranked = rank_leaderboard(
        [stats("user1", "1000", "50", 5, 5), stats("user2", "5000", "20", 10, 10)],
        LeaderboardMetric.PNL,
        False,
    )
    assert [e.user for e in ranked] == ["user1", "user2"]


def test_rank_leaderboard_includes_all_users():
    ranked = rank_leaderboard(
        [stats("user1", "5000", "100", 10, 5, tainted=True), stats("user2", "1000", "50", 5, 5)],
        LeaderboardMetric.VOLUME,
        True,
    )
    assert [e.user for e in ranked] == ["user1", "user2"]


def test_rank_leaderboard_preserves_taint_status():
    ranked = rank_leaderboard(
        [stats("user1", "5000", "100", 10, 5, tainted=True), stats("user2", "1000", "50", 5, 5)],
        LeaderboardMetric.VOLUME,
        False,
    )
    assert ranked[0].user == "user1"
    assert ranked[0].tainted
    assert not ranked[1].tainted


def test_rank_leaderboard_ties_keep_input_order():
    ranked = rank_leaderboard(
        [stats("a", "10", "0", 1, 1), stats("b", "10", "0", 1, 1), stats("c", "20", "0", 1, 1)],
        LeaderboardMetric.VOLUME,
    )
    assert [e.user for e in ranked] == ["c", "a", "b"]


def test_fill_enricher_checker():
    builder_fill = BuilderFill(
        time=datetime.fromtimestamp(1000, tz=timezone.utc),
        user="0xabc",
        asset="BTC",
        side=BuilderFillSide.BID,
        price=D("50000"),
        size=D("0.1"),
        crossed=False,
        special_trade_type="Na",
        time_in_force="Gtc",
        is_trigger=False,
        counterparty="0x0",
        closed_pnl=D(0),
        twap_id=0,
        builder_fee=D("0.5"),
    )
    checker = FillEnricherChecker(FillEnricher([builder_fill]))
    assert checker.total_fills() == 1
    match = make_fill("BTC", Side.BUY, "50000", "0.1", "5", "0", 1, 1_000_000)
    other = make_fill("BTC", Side.BUY, "51000", "0.1", "5", "0", 2, 1_000_000)
    assert checker.is_builder_fill(match, "0xABC")
    assert not checker.is_builder_fill(other, "0xABC")


class _FakeIndexer:
    def __init__(self, fills_by_user):
        self.fills_by_user = fills_by_user
        self.calls = []

    async def get_user_fills(self, user, from_ms, to_ms):
        self.calls.append((user, from_ms, to_ms))
        fills = self.fills_by_user[user]
        if isinstance(fills, Exception):
            raise fills
        return fills


@pytest.mark.asyncio
async def test_calculate_leaderboard_fetches_every_user():
    indexer = _FakeIndexer({"0xa": two_btc_fills(), "0xb": []})
    config = LeaderboardConfig(metric=LeaderboardMetric.VOLUME, from_ms=10, to_ms=20)
    result = await calculate_leaderboard(indexer, ["0xa", "0xb"], config, _TradeIdChecker([1, 2]))
    assert [s.user for s in result] == ["0xa", "0xb"]
    assert result[0].volume == D("10100")
    assert result[1].volume == D(0)
    assert sorted(indexer.calls) == [("0xa", 10, 20), ("0xb", 10, 20)]


@pytest.mark.asyncio
async def test_calculate_leaderboard_failed_user_gets_zero_stats():
    indexer = _FakeIndexer({"0xa": IndexerError("boom"), "0xb": two_btc_fills()})
    config = LeaderboardConfig(
        metric=LeaderboardMetric.RETURN_PCT, max_start_capital=D("1000")
    )
    result = await calculate_leaderboard(indexer, ["0xa", "0xb"], config, NoBuilderChecker())
    failed = result[0]
    assert failed.user == "0xa"
    assert failed.volume == D(0)
    assert failed.return_pct == D(0)
    assert failed.trade_count == 0
    assert not failed.taint_result.tainted
    assert result[1].return_pct == D("8.99")
    assert result[1].taint_result.tainted


@pytest.mark.asyncio
async def test_calculate_leaderboard_builder_only_and_coin():
    fills = two_btc_fills() + [make_fill("ETH", Side.BUY, "3000", "1", "3", "0", 3, 1500)]
    indexer = _FakeIndexer({"0xa": fills})
    config = LeaderboardConfig(builder_only=True, coin="BTC")
    result = await calculate_leaderboard(indexer, ["0xa"], config, _TradeIdChecker([1, 3]))
    assert result[0].volume == D("5000")
    assert result[0].trade_count == 1
    assert result[0].builder_fill_count == 1