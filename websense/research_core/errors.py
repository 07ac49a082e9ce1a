from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    INVALID_REQUEST = "INVALID_REQUEST"
    SEARCH_FAILED = "SEARCH_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    SCRAPING_FAILED = "SCRAPING_FAILED"
    TIMEOUT = "TIMEOUT"
    LLM_FAILED = "LLM_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class WebSenseError(Exception):
    """Base error carrying a machine-readable kind and an HTTP status."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    default_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        http_status: int | None = None,
        details: dict[str, Any] | None = None,
        stage: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.http_status = http_status if http_status is not None else self.default_status
        self.details = details
        self.stage = stage

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.kind.value, "message": self.message}
        if self.details:
            body["details"] = self.details
        if self.stage:
            body["stage"] = self.stage
        return {"error": body}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, message={self.message!r})"


class InvalidRequestError(WebSenseError):
    kind = ErrorKind.INVALID_REQUEST
    default_status = 400


class SearchFailedError(WebSenseError):
    kind = ErrorKind.SEARCH_FAILED


class RateLimitedError(WebSenseError):
    kind = ErrorKind.RATE_LIMITED
    default_status = 429


class ScrapingFailedError(WebSenseError):
    kind = ErrorKind.SCRAPING_FAILED


class FetchError(ScrapingFailedError):
    """Page could not be fetched; ``status_code`` is set for non-2xx responses."""

    default_status = 400

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class ContentTypeError(FetchError):
    def __init__(self, message: str, *, content_type: str = "", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.content_type = content_type


class FetchTimeoutError(WebSenseError):
    kind = ErrorKind.TIMEOUT
    default_status = 408


class ExtractionError(ScrapingFailedError):
    pass


class GenerationFailedError(WebSenseError):
    kind = ErrorKind.LLM_FAILED


class ContextTooLongError(GenerationFailedError):
    default_status = 400
    guidance = "Try reducing the number of sources or content length."

    def __init__(self, message: str | None = None, **kwargs: Any):
        super().__init__(
            message or f"Context too long for this model. {self.guidance}",
            **kwargs,
        )


class InternalError(WebSenseError):
    kind = ErrorKind.INTERNAL_ERROR
