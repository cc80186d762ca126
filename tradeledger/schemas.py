"""Request and response shapes of the HTTP API."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from tradeledger.errors import BadRequestError
from tradeledger.fills import UserFill
from tradeledger.leaderboard import LeaderboardEntry, LeaderboardMetric

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_U64_MAX = 2**64 - 1


def _dec(value: Decimal) -> str:
    return format(value, "f")


def _invalid(name: str, text: str) -> BadRequestError:
    return BadRequestError(f"invalid value for `{name}`: {text!r}")


def _int_param(params: Mapping[str, str], name: str, low: int, high: int) -> int | None:
    text = params.get(name)
    if text is None:
        return None
    digits = text[1:] if text[:1] in ("+", "-") else text
    if not (digits.isascii() and digits.isdigit()):
        raise _invalid(name, text)
    value = int(text)
    if not low <= value <= high:
        raise _invalid(name, text)
    return value


def _bool_param(params: Mapping[str, str], name: str) -> bool:
    text = params.get(name)
    if text is None:
        return False
    if text == "true":
        return True
    if text == "false":
        return False
    raise _invalid(name, text)


def _decimal_param(params: Mapping[str, str], name: str) -> Decimal | None:
    text = params.get(name)
    if text is None:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise _invalid(name, text) from None
    if not value.is_finite() or text != text.strip():
        raise _invalid(name, text)
    return value


@dataclass(frozen=True)
class TradesQuery:
    """Query parameters of GET /v1/trades."""

    user: str
    from_ms: int | None = None
    to_ms: int | None = None
    asset: str | None = None
    limit: int | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> TradesQuery:
        """Parse query parameters; raise BadRequestError if missing or malformed."""
        user = params.get("user")
        if user is None:
            raise BadRequestError("missing field `user`")
        return cls(
            user=user,
            from_ms=_int_param(params, "from_ms", _I64_MIN, _I64_MAX),
            to_ms=_int_param(params, "to_ms", _I64_MIN, _I64_MAX),
            asset=params.get("asset"),
            limit=_int_param(params, "limit", 0, _U64_MAX),
        )


@dataclass(frozen=True)
class TradeResponse:
    """A single fill in the trades response."""

    asset: str
    timestamp_ms: int
    price: Decimal
    size: Decimal
    side: str
    fee: Decimal
    closed_pnl: Decimal
    trade_id: int
    order_id: int
    crossed: bool
    direction: str

    @classmethod
    def from_fill(cls, fill: UserFill) -> TradeResponse:
        """Build the response row for a user fill."""
        return cls(
            asset=fill.asset,
            timestamp_ms=fill.timestamp_ms,
            price=fill.price,
            size=fill.size,
            side=fill.side.value,
            fee=fill.fee,
            closed_pnl=fill.closed_pnl,
            trade_id=fill.trade_id,
            order_id=fill.order_id,
            crossed=fill.crossed,
            direction=fill.direction,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON body; decimals are rendered as strings."""
        return {
            "asset": self.asset,
            "timestamp_ms": self.timestamp_ms,
            "price": _dec(self.price),
            "size": _dec(self.size),
            "side": self.side,
            "fee": _dec(self.fee),
            "closed_pnl": _dec(self.closed_pnl),
            "trade_id": self.trade_id,
            "order_id": self.order_id,
            "crossed": self.crossed,
            "direction": self.direction,
        }


@dataclass(frozen=True)
class TradesResponse:
    """Response of GET /v1/trades."""

    trades: list[TradeResponse]
    count: int
    has_more: bool

    def to_dict(self) -> dict[str, Any]:
        """JSON body."""
        return {
            "trades": [trade.to_dict() for trade in self.trades],
            "count": self.count,
            "has_more": self.has_more,
        }


@dataclass(frozen=True)
class HealthResponse:
    """Response of GET /health."""

    status: str
    version: str

    def to_dict(self) -> dict[str, Any]:
        """JSON body."""
        return {"status": self.status, "version": self.version}


@dataclass(frozen=True)
class LeaderboardQuery:
    """Query parameters of GET /v1/leaderboard (camelCase on the wire)."""

    coin: str | None = None
    from_ms: int | None = None
    to_ms: int | None = None
    metric: str = "volume"
    builder_only: bool = False
    max_start_capital: Decimal | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> LeaderboardQuery:
        """Parse query parameters; raise BadRequestError if malformed."""
        return cls(
            coin=params.get("coin"),
            from_ms=_int_param(params, "fromMs", _I64_MIN, _I64_MAX),
            to_ms=_int_param(params, "toMs", _I64_MIN, _I64_MAX),
            metric=params.get("metric", "volume"),
            builder_only=_bool_param(params, "builderOnly"),
            max_start_capital=_decimal_param(params, "maxStartCapital"),
        )

    def parse_metric(self) -> LeaderboardMetric | None:
        """The requested metric, or None if unknown."""
        return LeaderboardMetric.parse(self.metric)


@dataclass(frozen=True)
class LeaderboardEntryResponse:
    """A ranked row of the leaderboard response."""

    rank: int
    user: str
    metric_value: Decimal
    volume: Decimal
    realized_pnl: Decimal
    return_pct: Decimal | None
    trade_count: int
    builder_fill_count: int
    tainted: bool

    @classmethod
    def from_entry(cls, entry: LeaderboardEntry) -> LeaderboardEntryResponse:
        """Build the response row for a ranked entry."""
        return cls(
            rank=entry.rank,
            user=entry.user,
            metric_value=entry.metric_value,
            volume=entry.volume,
            realized_pnl=entry.realized_pnl,
            return_pct=entry.return_pct,
            trade_count=entry.trade_count,
            builder_fill_count=entry.builder_fill_count,
            tainted=entry.tainted,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON body; ``returnPct`` is omitted when absent."""
        body: dict[str, Any] = {
            "rank": self.rank,
            "user": self.user,
            "metricValue": _dec(self.metric_value),
            "volume": _dec(self.volume),
            "realizedPnl": _dec(self.realized_pnl),
        }
        if self.return_pct is not None:
            body["returnPct"] = _dec(self.return_pct)
        body["tradeCount"] = self.trade_count
        body["builderFillCount"] = self.builder_fill_count
        body["tainted"] = self.tainted
        return body


@dataclass(frozen=True)
class LeaderboardResponse:
    """Response of GET /v1/leaderboard."""

    entries: list[LeaderboardEntryResponse]
    metric: str
    builder_only: bool
    total_users: int
    filtered_users: int
    from_ms: int | None = None
    to_ms: int | None = None
    coin: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """JSON body; absent range and coin are omitted."""
        body: dict[str, Any] = {
            "entries": [entry.to_dict() for entry in self.entries],
            "metric": self.metric,
        }
        if self.from_ms is not None:
            body["fromMs"] = self.from_ms
        if self.to_ms is not None:
            body["toMs"] = self.to_ms
        if self.coin is not None:
            body["coin"] = self.coin
        body["builderOnly"] = self.builder_only
        body["totalUsers"] = self.total_users
        body["filteredUsers"] = self.filtered_users
        return body