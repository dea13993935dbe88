"""Error taxonomy for the extraction and generation pipeline.

A single exception type carries an explicit ``ErrorKind``. Call sites decide
between retry, fallback and propagation by matching on ``error.kind``.
"""
from enum import Enum
from typing import Optional

from posterkit.app.models import ErrorResponse


class ErrorKind(str, Enum):
    """Kinds of pipeline failure."""
    CONFIGURATION = "configuration"
    RATE_LIMIT = "rate_limit"
    SERVICE_UNAVAILABLE = "service_unavailable"
    PARSING = "parsing"
    TRANSIENT_NETWORK = "transient_network"
    EXTRACTION_FAILED = "extraction_failed"
    TEMPLATE_GENERATION_FAILED = "template_generation_failed"

    @property
    def is_terminal(self) -> bool:
        """Operator-actionable kinds that are never recovered locally."""
        return self in (
            ErrorKind.CONFIGURATION,
            ErrorKind.RATE_LIMIT,
            ErrorKind.SERVICE_UNAVAILABLE,
        )

    @property
    def code(self) -> str:
        return _PUBLIC[self][0]

    @property
    def http_status(self) -> int:
        return _PUBLIC[self][1]

    @property
    def public_message(self) -> str:
        return _PUBLIC[self][2]


_PUBLIC = {
    ErrorKind.CONFIGURATION: (
        "AI_NOT_CONFIGURED", 503,
        "AI service is not properly configured. Please contact support.",
    ),
    ErrorKind.RATE_LIMIT: (
        "AI_RATE_LIMITED", 429,
        "AI service is busy. Please wait a moment and try again.",
    ),
    ErrorKind.SERVICE_UNAVAILABLE: (
        "AI_SERVICE_UNAVAILABLE", 503,
        "AI service is temporarily unavailable. Please try again later.",
    ),
    ErrorKind.PARSING: (
        "EVENT_PARSING_FAILED", 422,
        "Could not extract event details from the provided URL. Please try entering details manually.",
    ),
    ErrorKind.TRANSIENT_NETWORK: (
        "AI_SERVICE_UNAVAILABLE", 503,
        "AI service is temporarily unavailable. Please try again later.",
    ),
    ErrorKind.EXTRACTION_FAILED: (
        "EVENT_PARSING_FAILED", 422,
        "Could not extract event details from the provided URL. Please try entering details manually.",
    ),
    ErrorKind.TEMPLATE_GENERATION_FAILED: (
        "TEMPLATE_GENERATION_FAILED", 500,
        "Could not generate poster templates. Please try again.",
    ),
}


class PipelineError(Exception):
    """Failure raised anywhere in the pipeline.

    Args:
        kind: What went wrong; drives retry/fallback decisions
        detail: Internal diagnostic text (logged, never sent to clients)
        status_code: Upstream HTTP status when the failure came from a provider
        retry_after: Seconds the provider asked us to wait, if it said so
    """

    def __init__(
        self,
        kind: ErrorKind,
        detail: str = "",
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        self.kind = kind
        self.detail = detail or kind.public_message
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(self.detail)

    def __repr__(self) -> str:
        return f"PipelineError(kind={self.kind.value!r}, detail={self.detail!r})"

    def to_response(self) -> dict:
        """Client-safe payload: code and public message only."""
        return ErrorResponse(
            code=self.kind.code,
            message=self.kind.public_message,
            retry_after=self.retry_after,
        ).to_wire()
