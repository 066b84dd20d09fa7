# src/shipping_rate_analysis/errors.py
from __future__ import annotations

# Failure buckets for quoting errors
RATE_LIMIT = "rate_limit"
TIMEOUT = "timeout"
AUTH = "auth"
OTHER = "other"
ERROR_CATEGORIES = (RATE_LIMIT, TIMEOUT, AUTH, OTHER)


class RateAnalysisError(RuntimeError):
    """Base class for errors raised by shipping_rate_analysis."""


class UploadError(RateAnalysisError):
    """The upload could not be read, or has no header row / no data rows."""


class QuoteError(RateAnalysisError):
    """The quoting collaborator failed for one request.

    `category` is one of ERROR_CATEGORIES when the raiser knows it;
    otherwise the quoting stage derives it from the status code and message.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        category: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.category = category
