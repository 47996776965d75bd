"""
Application error taxonomy.

Every error the chat pipeline or the content store raises on purpose is an
``AppError``. The API layer renders them uniformly as:

    {"error": {"code": "RATE_LIMIT_EXCEEDED", "message": "..."}}

Categories:
-----------
- ValidationError: bad input shape/length. Surfaced verbatim, never retried.
- RateLimitError: session exceeded its request window. Caller must back off.
- UpstreamError: embedding / completion / media service failure.
- NotFoundError: missing content record.
- PersistenceError: store unavailable.
- ChatFailedError: the single failure surfaced by ``chat()`` when the
  completion call or a correctness-relevant write fails.
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "field": self.field}


class RateLimitError(AppError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, limit: int, window_seconds: int = 60):
        super().__init__(
            f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds."
        )
        self.limit = limit
        self.window_seconds = window_seconds


class UpstreamError(AppError):
    status_code = 502
    code = "UPSTREAM_ERROR"


class EmbeddingError(UpstreamError):
    code = "EMBEDDING_FAILED"


class CompletionError(UpstreamError):
    code = "COMPLETION_FAILED"


class MediaAnalysisError(UpstreamError):
    code = "MEDIA_ANALYSIS_FAILED"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: object):
        super().__init__(f"{resource} with id {identifier} not found")
        self.resource = resource
        self.identifier = identifier


class PersistenceError(AppError):
    status_code = 503
    code = "PERSISTENCE_ERROR"


class ChatFailedError(AppError):
    status_code = 500
    code = "CHAT_FAILED"
