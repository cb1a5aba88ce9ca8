# models/errors.py

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorBody(BaseModel):
    """JSON body returned for every failed request."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    message: str
    code: ErrorCode
    retry_after: Optional[int] = Field(None, alias="retryAfter")

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ApiError(Exception):
    """
    Base for failures that map onto a client-facing error response.

    `message` is safe to show to callers; anything internal belongs in
    subclass-specific attributes and only ever reaches the logs.
    """

    status_code = 500
    code = ErrorCode.INTERNAL_ERROR
    error = "Internal error"

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error

    def to_body(self) -> ErrorBody:
        return ErrorBody(error=self.error, message=self.message, code=self.code)


class InvalidInput(ApiError):
    status_code = 400
    code = ErrorCode.INVALID_INPUT
    error = "Invalid input"


class RateLimitExceeded(ApiError):
    status_code = 429
    code = ErrorCode.RATE_LIMIT_EXCEEDED
    error = "Rate limit exceeded"

    def __init__(self, limit: int, retry_after: int):
        super().__init__(f"Maximum {limit} requests per minute per client")
        self.retry_after = retry_after

    def to_body(self) -> ErrorBody:
        return ErrorBody(
            error=self.error, message=self.message, code=self.code, retry_after=self.retry_after
        )


class ProviderError(ApiError):
    """
    Upstream failure: transport error, non-2xx status or an unexpected
    response shape. `status` is the upstream HTTP status when one was
    received, `transport` is set when the call never completed, and
    `detail` is for logs only.
    """

    status_code = 502
    code = ErrorCode.PROVIDER_ERROR
    error = "Provider unavailable"

    def __init__(
        self,
        message: str = "Upstream data provider temporarily unavailable",
        status: Optional[int] = None,
        detail: Optional[str] = None,
        transport: bool = False,
    ):
        super().__init__(message)
        self.status = status
        self.detail = detail
        self.transport = transport


class InternalError(ApiError):
    def __init__(self, message: str = "Unexpected server error"):
        super().__init__(message)
