"""Unified error taxonomy for the gateway.

Errors are raised where they are detected (validation, model resolution, the
upstream call) and rendered into a wire error body exactly once, at the
request boundary. Nothing here is retried.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Protocol-neutral error classification."""

    INVALID_REQUEST = "invalid_request"
    PERMISSION_DENIED = "permission_denied"
    CONTENT_FILTERED = "content_filtered"
    NOT_FOUND = "not_found"
    CONTEXT_EXCEEDED = "context_exceeded"
    UNAVAILABLE = "unavailable"
    UPSTREAM_FAILURE = "upstream_failure"
    INTERNAL = "internal"


DEFAULT_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.CONTENT_FILTERED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONTEXT_EXCEEDED: 400,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.UPSTREAM_FAILURE: 502,
    ErrorKind.INTERNAL: 500,
}


class GatewayError(Exception):
    """Base exception for every error rendered to a client."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, http_status: int | None = None):
        self.message = message
        self.http_status = http_status or DEFAULT_STATUS[self.kind]
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, http_status={self.http_status})"


class InvalidRequestError(GatewayError):
    """Malformed body, missing fields, wrong method or unresolvable model (Protocol A)."""

    kind = ErrorKind.INVALID_REQUEST


class PermissionDeniedError(GatewayError):
    """The upstream refused access to the model."""

    kind = ErrorKind.PERMISSION_DENIED


class ContentFilteredError(GatewayError):
    """The upstream blocked the request with a content filter."""

    kind = ErrorKind.CONTENT_FILTERED


class NotFoundError(GatewayError):
    """Unknown route, or unresolvable model (Protocol B)."""

    kind = ErrorKind.NOT_FOUND


class ContextExceededError(GatewayError):
    """The request does not fit in the model context window."""

    kind = ErrorKind.CONTEXT_EXCEEDED


class UnavailableError(GatewayError):
    """No chat models can be discovered."""

    kind = ErrorKind.UNAVAILABLE


class UpstreamFailureError(GatewayError):
    """Any other failure reported by the upstream capability."""

    kind = ErrorKind.UPSTREAM_FAILURE


class InternalError(GatewayError):
    """Unexpected exception anywhere in the pipeline."""

    kind = ErrorKind.INTERNAL


class UpstreamError(Exception):
    """Failure signalled by an upstream backend.

    Attributes:
        code: Opaque upstream failure code (see UpstreamErrorCode)
        message: Upstream supplied description
    """

    def __init__(self, code: str, message: str = ""):
        self.code = code
        self.message = message or code
        super().__init__(f"{code}: {self.message}")


class UpstreamErrorCode(StrEnum):
    """Upstream failure codes with a dedicated classification."""

    NO_PERMISSIONS = "NoPermissions"
    BLOCKED = "Blocked"
    NOT_FOUND = "NotFound"
    CONTEXT_LENGTH_EXCEEDED = "ContextLengthExceeded"


_UPSTREAM_CLASSIFICATION: dict[str, tuple[type[GatewayError], str]] = {
    UpstreamErrorCode.NO_PERMISSIONS: (
        PermissionDeniedError,
        "permission denied for language model access",
    ),
    UpstreamErrorCode.BLOCKED: (ContentFilteredError, "request blocked by content filter"),
    UpstreamErrorCode.NOT_FOUND: (NotFoundError, "language model not found"),
    UpstreamErrorCode.CONTEXT_LENGTH_EXCEEDED: (
        ContextExceededError,
        "request exceeds context length limit",
    ),
}


def classify_upstream_error(exc: BaseException) -> GatewayError:
    """Convert an exception raised by the upstream capability into a GatewayError.

    Known upstream codes map through a fixed table. Unrecognized codes and
    foreign exceptions become UpstreamFailure (502). GatewayErrors pass through.
    """
    if isinstance(exc, GatewayError):
        return exc
    if isinstance(exc, UpstreamError):
        classified = _UPSTREAM_CLASSIFICATION.get(exc.code)
        if classified is not None:
            error_cls, message = classified
            return error_cls(message)
        return UpstreamFailureError(f"language model error: {exc.message}")
    return UpstreamFailureError(f"language model request failed: {exc}")
