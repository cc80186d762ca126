"""Builder-attributed fills as published in the daily builder fill files."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

from tradeledger.errors import CsvParseError

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_U64_MAX = 2**64 - 1


class BuilderFillSide(enum.Enum):
    """Order side for builder fills."""

    BID = "Bid"
    ASK = "Ask"

    @classmethod
    def parse(cls, text: str) -> BuilderFillSide | None:
        """Parse the CSV spelling; return None for anything else."""
        for member in cls:
            if member.value == text:
                return member
        return None

    def is_buy(self) -> bool:
        """Whether this is a buy (bid) order."""
        return self is BuilderFillSide.BID


def _field(record: Mapping[str, str], name: str) -> str:
    value = record.get(name)
    if value is None:
        raise CsvParseError(f"missing field `{name}`")
    return value


def _parse_datetime(text: str) -> datetime:
    normalized = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        raise CsvParseError(f"invalid datetime: {text}") from None
    if parsed.tzinfo is None:
        raise CsvParseError(f"invalid datetime: {text}")
    return parsed.astimezone(timezone.utc)


def _parse_decimal(text: str) -> Decimal:
    if text != text.strip() or not text:
        raise CsvParseError(f"invalid decimal: {text}")
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise CsvParseError(f"invalid decimal: {text}") from None
    if not value.is_finite():
        raise CsvParseError(f"invalid decimal: {text}")
    return value


def _parse_bool(text: str) -> bool:
    if text == "true":
        return True
    if text == "false":
        return False
    raise CsvParseError(f"invalid bool: {text}")


def _parse_u64(text: str) -> int:
    if not (text.isascii() and text.isdigit()) or int(text) > _U64_MAX:
        raise CsvParseError(f"invalid integer: {text}")
    return int(text)


@dataclass(frozen=True)
class BuilderFill:
    """A fill routed through a builder's order flow."""

    time: datetime
    user: str
    asset: str
    side: BuilderFillSide
    price: Decimal
    size: Decimal
    crossed: bool
    special_trade_type: str
    time_in_force: str
    is_trigger: bool
    counterparty: str
    closed_pnl: Decimal
    twap_id: int
    builder_fee: Decimal

    @classmethod
    def from_record(cls, record: Mapping[str, str]) -> BuilderFill:
        """Build a fill from one CSV row keyed by column name.

        Raises CsvParseError for missing or malformed values.
        """
        side_text = _field(record, "side")
        side = BuilderFillSide.parse(side_text)
        time = _parse_datetime(_field(record, "time"))
        price = _parse_decimal(_field(record, "px"))
        size = _parse_decimal(_field(record, "sz"))
        crossed = _parse_bool(_field(record, "crossed"))
        is_trigger = _parse_bool(_field(record, "is_trigger"))
        closed_pnl = _parse_decimal(_field(record, "closed_pnl"))
        twap_id = _parse_u64(_field(record, "twap_id"))
        builder_fee = _parse_decimal(_field(record, "builder_fee"))
        user = _field(record, "user")
        coin = _field(record, "coin")
        special_trade_type = _field(record, "special_trade_type")
        tif = _field(record, "tif")
        counterparty = _field(record, "counterparty")
        if side is None:
            raise CsvParseError(f"invalid side: {side_text}")
        return cls(
            time=time,
            user=user,
            asset=coin,
            side=side,
            price=price,
            size=size,
            crossed=crossed,
            special_trade_type=special_trade_type,
            time_in_force=tif,
            is_trigger=is_trigger,
            counterparty=counterparty,
            closed_pnl=closed_pnl,
            twap_id=twap_id,
            builder_fee=builder_fee,
        )

    def notional_value(self) -> Decimal:
        """Price times size."""
        return self.price * self.size

    def timestamp_ms(self) -> int:
        """Milliseconds since the Unix epoch."""
        return (self.time - _EPOCH) // timedelta(milliseconds=1)