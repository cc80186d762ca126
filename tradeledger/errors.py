"""Exception hierarchy for builder data, indexing and the HTTP API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

logger = logging.getLogger(__name__)


class BuilderDataError(Exception):
    """Failure while fetching or parsing builder fill data."""

    _template = "{}"

    def __init__(self, detail: Any) -> None:
        self.detail = str(detail)
        super().__init__(self._template.format(detail))


class HttpError(BuilderDataError):
    """An HTTP request failed."""

    _template = "HTTP error: {}"


class NotFoundError(BuilderDataError):
    """No data is published for the requested date."""

    def __init__(self, date: str) -> None:
        self.date = date
        self.detail = date
        Exception.__init__(self, f"no data available for date {date}")


class DecompressionError(BuilderDataError):
    """LZ4 decompression failed."""

    _template = "decompression error: {}"


class CsvParseError(BuilderDataError):
    """The CSV payload could not be parsed."""

    _template = "CSV parse error: {}"


class InvalidAddressError(BuilderDataError):
    """The builder address is malformed."""

    _template = "invalid builder address: {}"


class InvalidDateError(BuilderDataError):
    """A date could not be handled."""

    _template = "invalid date format: {}"


class IndexerError(Exception):
    """Failure during an indexing operation."""

    _template = "{}"

    def __init__(self, detail: Any) -> None:
        self.detail = str(detail)
        super().__init__(self._template.format(detail))


class InvalidTimeRangeError(IndexerError):
    """The requested time range or mode is not valid."""

    _template = "invalid time range: {}"


class NoDataError(IndexerError):
    """No data is available."""

    _template = "no data available: {}"


class ApiError(Exception):
    """An error returned to API clients as a JSON body."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    code = "internal_error"
    _template = "{}"

    def __init__(self, detail: Any) -> None:
        self.detail = str(detail)
        super().__init__(self._template.format(detail))

    def _details(self) -> str | None:
        return self.detail

    def to_body(self) -> dict[str, str]:
        """Return the JSON body sent to the client; ``details`` is omitted when absent."""
        body = {"error": self.code}
        details = self._details()
        if details is not None:
            body["details"] = details
        return body


class BadRequestError(ApiError):
    """Invalid request parameters."""

    status = HTTPStatus.BAD_REQUEST
    code = "bad_request"
    _template = "invalid request: {}"


class ResourceNotFoundError(ApiError):
    """The requested resource does not exist."""

    status = HTTPStatus.NOT_FOUND
    code = "not_found"
    _template = "not found: {}"


class InternalError(ApiError):
    """An internal failure whose details are not exposed."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR
    code = "internal_error"
    _template = "internal error: {}"

    def _details(self) -> str | None:
        logger.error("Internal error: %s", self.detail)
        return None


class IndexerApiError(ApiError):
    """An indexer failure surfaced through the API."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR
    code = "indexer_error"
    _template = "indexer error: {}"

    def __init__(self, cause: IndexerError) -> None:
        self.cause = cause
        super().__init__(cause)

    def _details(self) -> str | None:
        logger.error("Indexer error: %s", self.cause)
        return str(self.cause)