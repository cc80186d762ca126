"""Download of the daily builder fill files."""

from __future__ import annotations

import datetime as dt
import logging

import httpx
import lz4.frame

from tradeledger.builder_fill import BuilderFill
from tradeledger.errors import (
    DecompressionError,
    HttpError,
    InvalidAddressError,
    InvalidDateError,
    NotFoundError,
)
from tradeledger.parser import parse_builder_fills

logger = logging.getLogger(__name__)

STATS_BASE_URL = "https://stats-data.hyperliquid.xyz"

_ONE_DAY = dt.timedelta(days=1)


def _compact_date(date: dt.date) -> str:
    return f"{date.year:04d}{date.month:02d}{date.day:02d}"


def decompress_lz4(compressed: bytes) -> bytes:
    """Decompress LZ4 frame data, raising DecompressionError on corrupt input."""
    if not compressed:
        return b""
    try:
        return lz4.frame.decompress(compressed)
    except (RuntimeError, ValueError) as exc:
        raise DecompressionError(exc) from None


class BuilderDataClient:
    """Fetches builder fills, published daily as LZ4-compressed CSV files."""

    def __init__(self, builder_address: str) -> None:
        address = builder_address.lower()
        if not address.startswith("0x"):
            raise InvalidAddressError("address must start with 0x")
        self._builder_address = address

    def builder_address(self) -> str:
        """The builder address, lower case."""
        return self._builder_address

    def build_url(self, date: dt.date) -> str:
        """URL of the fill file for one date."""
        return (
            f"{STATS_BASE_URL}/Mainnet/builder_fills/"
            f"{self._builder_address}/{_compact_date(date)}.csv.lz4"
        )

    async def fetch_fills(self, date: dt.date) -> list[BuilderFill]:
        """Fetch the fills for one date.

        Raises NotFoundError when no file exists (403/404), HttpError on other
        HTTP or network failures, DecompressionError and CsvParseError on bad data.
        """
        url = self.build_url(date)
        logger.debug("Fetching builder fills from: %s", url)

        try:
            async with httpx.AsyncClient(follow_redirects=True) as http:
                response = await http.get(url)
        except httpx.HTTPError as exc:
            raise HttpError(exc) from exc

        if response.status_code in (403, 404):
            raise NotFoundError(date.isoformat())
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise HttpError(exc) from exc

        compressed = response.content
        logger.debug("Downloaded %d bytes (compressed)", len(compressed))
        decompressed = decompress_lz4(compressed)
        logger.debug("Decompressed to %d bytes", len(decompressed))

        fills = parse_builder_fills(decompressed)
        logger.info("Parsed %d builder fills for %s", len(fills), date.isoformat())
        return fills

    async def fetch_fills_range(self, start: dt.date, end: dt.date) -> list[BuilderFill]:
        """Fetch fills for every date from start to end inclusive, sorted by time.

        Dates without data are skipped; any other error is raised.
        """
        all_fills: list[BuilderFill] = []
        current = start
        while current <= end:
            try:
                all_fills.extend(await self.fetch_fills(current))
            except NotFoundError:
                logger.debug("No data for %s", current.isoformat())
            try:
                current += _ONE_DAY
            except OverflowError:
                raise InvalidDateError("date overflow") from None
        all_fills.sort(key=lambda fill: fill.time)
        return all_fills