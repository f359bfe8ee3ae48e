"""Error types for the upload and publish pipeline.

Every error carries the HTTP status the API layer answers with and whether a
caller may retry the same request. The API maps them to ``{"error": message}``.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    http_status: int = 500
    retryable_default: bool = False

    def __init__(
        self,
        message: str,
        http_status: int | None = None,
        is_retryable: bool | None = None,
    ):
        super().__init__(message)
        self.message = message
        if http_status is not None:
            self.http_status = http_status
        self.is_retryable = self.retryable_default if is_retryable is None else is_retryable

    def to_dict(self) -> dict:
        return {"error": self.message}


class NotFound(PipelineError):
    http_status = 404


class InvalidRequest(PipelineError):
    http_status = 400


class InvalidState(PipelineError):
    http_status = 400


class Incomplete(PipelineError):
    """Finalize requested before every part was uploaded."""

    http_status = 400

    def __init__(self, uploaded: int, required: int):
        super().__init__(f"Upload incomplete: {uploaded}/{required} parts uploaded")
        self.uploaded = uploaded
        self.required = required

    def to_dict(self) -> dict:
        return {"error": "Incomplete upload", "uploaded": self.uploaded, "required": self.required}


class Expired(PipelineError):
    http_status = 410


class AccessDenied(PipelineError):
    http_status = 403


class SizeLimitExceeded(PipelineError):
    http_status = 400


class SizeUnknown(PipelineError):
    http_status = 400


class NotConnected(PipelineError):
    """No usable credential for the platform (missing or refresh failed)."""

    http_status = 401


class AuthExpired(PipelineError):
    http_status = 401


class TransientNetwork(PipelineError):
    http_status = 503
    retryable_default = True


class PlatformAPIError(PipelineError):
    """A platform answered with an unexpected status.

    ``status_code`` is the platform's HTTP status. Rate limiting and server
    errors are retryable.
    """

    http_status = 502

    def __init__(
        self,
        message: str,
        platform: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ):
        retryable = status_code is not None and (status_code == 429 or status_code >= 500)
        super().__init__(message, is_retryable=retryable)
        self.platform = platform
        self.status_code = status_code
        self.body = body


class PlatformProcessingFailed(PipelineError):
    """The platform accepted the media but reported processing failure."""

    http_status = 502


ERROR_CODE_HEADER = "X-Error-Code"
"""Response header naming the error class, so clients can raise the same type."""

_WIRE_ERRORS: dict[str, type[PipelineError]] = {
    cls.__name__: cls
    for cls in (
        NotFound,
        InvalidRequest,
        InvalidState,
        Incomplete,
        Expired,
        AccessDenied,
        SizeLimitExceeded,
        SizeUnknown,
        NotConnected,
        AuthExpired,
        TransientNetwork,
        PlatformAPIError,
        PlatformProcessingFailed,
    )
}


def error_code(error: PipelineError) -> str:
    """Name of the closest error class a client knows about."""
    for cls in type(error).__mro__:
        if cls.__name__ in _WIRE_ERRORS:
            return cls.__name__
    return PipelineError.__name__


def error_from_response(code: str | None, message: str, body: dict) -> PipelineError | None:
    """Rebuild the error named by ``code``, or None when the name is unknown."""
    cls = _WIRE_ERRORS.get(code or "")
    if cls is None:
        return None
    if cls is Incomplete:
        return Incomplete(body.get("uploaded", 0), body.get("required", 0))
    return cls(message)
