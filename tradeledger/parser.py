"""Parsing of builder fill CSV data."""

from __future__ import annotations

import csv
import io

from tradeledger.builder_fill import BuilderFill
from tradeledger.errors import CsvParseError


def parse_builder_fills(data: bytes | str) -> list[BuilderFill]:
    """Parse UTF-8 CSV data with a header row into builder fills.

    Raises CsvParseError on undecodable input, ragged rows or bad values.
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CsvParseError(f"invalid UTF-8: {exc}") from None
    else:
        text = data

    reader = csv.DictReader(io.StringIO(text, newline=""))
    fills = []
    try:
        for row in reader:
            if None in row or None in row.values():
                raise CsvParseError(
                    f"found record with wrong number of fields on line {reader.line_num}"
                )
            fills.append(BuilderFill.from_record(row))
    except csv.Error as exc:
        raise CsvParseError(str(exc)) from None
    return fills