"""HTTP API: health check, user trades and the competition leaderboard."""

from __future__ import annotations

import contextlib
import datetime as dt
import logging
from collections.abc import Iterator

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from tradeledger.client import BuilderDataClient
from tradeledger.enricher import FillEnricher
from tradeledger.errors import (
    ApiError,
    BadRequestError,
    BuilderDataError,
    IndexerApiError,
    IndexerError,
    InvalidAddressError,
)
from tradeledger.leaderboard import (
    BuilderFillChecker,
    FillEnricherChecker,
    LeaderboardConfig,
    LeaderboardMetric,
    NoBuilderChecker,
    calculate_leaderboard,
    rank_leaderboard,
)
from tradeledger.schemas import (
    HealthResponse,
    LeaderboardEntryResponse,
    LeaderboardQuery,
    LeaderboardResponse,
    TradeResponse,
    TradesQuery,
    TradesResponse,
)
from tradeledger.state import AppState

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
DEFAULT_TRADES_LIMIT = 100
MAX_TRADES_LIMIT = 1000

_EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)
_ONE_DAY = dt.timedelta(days=1)
_DEFAULT_LOOKBACK = dt.timedelta(days=7)


def _app_state(request: Request) -> AppState:
    return request.app.state.app_state


@contextlib.contextmanager
def _indexer_errors() -> Iterator[None]:
    try:
        yield
    except IndexerError as exc:
        raise IndexerApiError(exc) from exc


def _validate_user(user: str) -> None:
    if not user:
        raise BadRequestError("user address is required")
    if not user.startswith("0x"):
        raise BadRequestError("user address must start with 0x")


def _date_from_ms(ms: int) -> dt.date:
    try:
        return (_EPOCH + dt.timedelta(milliseconds=ms)).date()
    except OverflowError:
        raise BadRequestError(f"timestamp out of range: {ms}") from None


def _dates(start: dt.date, end: dt.date) -> Iterator[dt.date]:
    current = start
    while current <= end:
        yield current
        try:
            current += _ONE_DAY
        except OverflowError:
            return


async def health(request: Request) -> JSONResponse:
    """GET /health."""
    return JSONResponse(HealthResponse(status="ok", version=VERSION).to_dict())


async def get_trades(request: Request) -> JSONResponse:
    """GET /v1/trades: a user's fills, optionally filtered by asset and limited."""
    query = TradesQuery.from_params(request.query_params)
    _validate_user(query.user)

    state = _app_state(request)
    with _indexer_errors():
        fills = await state.indexer.get_user_fills(query.user, query.from_ms, query.to_ms)

    if query.asset is not None:
        fills = [fill for fill in fills if fill.asset == query.asset]

    limit = DEFAULT_TRADES_LIMIT if query.limit is None else query.limit
    limit = min(limit, MAX_TRADES_LIMIT)

    trades = [TradeResponse.from_fill(fill) for fill in fills[:limit]]
    response = TradesResponse(trades=trades, count=len(trades), has_more=len(fills) > limit)
    return JSONResponse(response.to_dict())


async def fetch_builder_fills(
    builder_addr: str, from_ms: int | None, to_ms: int | None
) -> FillEnricher:
    """Download builder fills for every date in the range.

    Without a start the range begins seven days ago; without an end it stops
    today. Dates that fail to download are skipped.
    """
    try:
        client = BuilderDataClient(builder_addr)
    except InvalidAddressError as exc:
        raise BadRequestError(f"invalid builder address '{builder_addr}': {exc}") from None

    now = dt.datetime.now(dt.timezone.utc)
    from_date = _date_from_ms(from_ms) if from_ms is not None else (now - _DEFAULT_LOOKBACK).date()
    to_date = _date_from_ms(to_ms) if to_ms is not None else now.date()

    all_fills = []
    for date in _dates(from_date, to_date):
        try:
            fills = await client.fetch_fills(date)
        except BuilderDataError as exc:
            logger.debug("No builder fills for date %s (%s), continuing", date, exc)
        else:
            logger.debug("Fetched %d builder fills for date %s", len(fills), date)
            all_fills.extend(fills)

    logger.info(
        "Total builder fills fetched: %d (from %s to %s)", len(all_fills), from_date, to_date
    )
    return FillEnricher(all_fills)


async def get_leaderboard(request: Request) -> JSONResponse:
    """GET /v1/leaderboard: rank competition users by the requested metric."""
    state = _app_state(request)
    competition = state.competition_config
    if not competition.is_configured():
        raise BadRequestError(
            "competition not configured: COMPETITION_USERS environment variable not set"
        )

    query = LeaderboardQuery.from_params(request.query_params)
    metric = query.parse_metric()
    if metric is None:
        raise BadRequestError(
            f"invalid metric '{query.metric}': must be 'volume', 'pnl', or 'returnPct'"
        )

    if metric is LeaderboardMetric.RETURN_PCT:
        if query.from_ms is None:
            raise BadRequestError("from_ms is required for returnPct metric")
        if query.max_start_capital is None:
            raise BadRequestError("maxStartCapital is required for returnPct metric")

    builder_only = query.builder_only or competition.builder_only
    config = LeaderboardConfig(
        metric=metric,
        target_builder=competition.target_builder,
        builder_only=builder_only,
        max_start_capital=query.max_start_capital,
        coin=query.coin,
        from_ms=query.from_ms,
        to_ms=query.to_ms,
    )

    checker: BuilderFillChecker
    if competition.target_builder is not None:
        enricher = await fetch_builder_fills(
            competition.target_builder, query.from_ms, query.to_ms
        )
        builder_fills_loaded = enricher.total_fills()
        checker = FillEnricherChecker(enricher)
        logger.info("Loaded %d builder fills for leaderboard", builder_fills_loaded)
    else:
        builder_fills_loaded = 0
        checker = NoBuilderChecker()

    with _indexer_errors():
        stats = await calculate_leaderboard(
            state.indexer, competition.competition_users, config, checker
        )

    total_users = len(stats)
    ranked = rank_leaderboard(stats, metric, builder_only)
    filtered_users = len(ranked)

    logger.info(
        "Leaderboard: %d total users, %d after filtering, %d builder fills",
        total_users,
        filtered_users,
        builder_fills_loaded,
    )

    response = LeaderboardResponse(
        entries=[LeaderboardEntryResponse.from_entry(entry) for entry in ranked],
        metric=metric.as_str(),
        builder_only=builder_only,
        total_users=total_users,
        filtered_users=filtered_users,
        from_ms=query.from_ms,
        to_ms=query.to_ms,
        coin=query.coin,
    )
    return JSONResponse(response.to_dict())


async def _api_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ApiError)
    return JSONResponse(exc.to_body(), status_code=int(exc.status))


def create_app(state: AppState) -> Starlette:
    """Build the application with all routes bound to the given state."""
    app = Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/v1/trades", get_trades, methods=["GET"]),
            Route("/v1/leaderboard", get_leaderboard, methods=["GET"]),
        ],
        exception_handlers={ApiError: _api_error_handler},
    )
    app.state.app_state = state
    return app