"""Rendering of GatewayErrors into each protocol's wire error shape.

OpenAI:    {"error": {"message", "type", "code"}} with code = str(status)
Anthropic: {"type": "error", "error": {"type", "message"}} with no code
"""

from typing import Any

from fastapi.responses import JSONResponse

from lm_gateway.platform.errors import ErrorKind, GatewayError
from lm_gateway.protocols.common import WireProtocol

INVALID_REQUEST_ERROR = "invalid_request_error"
PERMISSION_ERROR = "permission_error"
NOT_FOUND_ERROR = "not_found_error"
API_ERROR = "api_error"
OVERLOADED_ERROR = "overloaded_error"
REQUEST_TOO_LARGE = "request_too_large"

_OPENAI_TYPES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_REQUEST: INVALID_REQUEST_ERROR,
    ErrorKind.PERMISSION_DENIED: PERMISSION_ERROR,
    ErrorKind.CONTENT_FILTERED: PERMISSION_ERROR,
    ErrorKind.NOT_FOUND: NOT_FOUND_ERROR,
    ErrorKind.CONTEXT_EXCEEDED: INVALID_REQUEST_ERROR,
    ErrorKind.UNAVAILABLE: API_ERROR,
    ErrorKind.UPSTREAM_FAILURE: API_ERROR,
    ErrorKind.INTERNAL: API_ERROR,
}

_ANTHROPIC_TYPES: dict[ErrorKind, str] = {
    **_OPENAI_TYPES,
    ErrorKind.UNAVAILABLE: OVERLOADED_ERROR,
}


def error_type(error: GatewayError, protocol: WireProtocol) -> str:
    """The machine-readable error type string for a protocol."""
    if protocol is WireProtocol.ANTHROPIC:
        if error.http_status == 413:
            return REQUEST_TOO_LARGE
        return _ANTHROPIC_TYPES[error.kind]
    return _OPENAI_TYPES[error.kind]


def render_error(error: GatewayError, protocol: WireProtocol) -> tuple[int, dict[str, Any]]:
    """Render an error as (http_status, body) for the given protocol."""
    if protocol is WireProtocol.ANTHROPIC:
        body: dict[str, Any] = {
            "type": "error",
            "error": {"type": error_type(error, protocol), "message": error.message},
        }
    else:
        body = {
            "error": {
                "message": error.message,
                "type": error_type(error, protocol),
                "code": str(error.http_status),
            }
        }
    return error.http_status, body


class ErrorResponder:
    """Produces at most one error response for a single exchange.

    Once response headers have gone out (a stream has started) the status line
    can no longer change, so later calls are no-ops returning None.
    """

    def __init__(self, protocol: WireProtocol):
        self.protocol = protocol
        self._headers_sent = False

    @property
    def headers_sent(self) -> bool:
        return self._headers_sent

    def mark_headers_sent(self) -> None:
        self._headers_sent = True

    def respond(self, error: GatewayError) -> JSONResponse | None:
        if self._headers_sent:
            return None
        self._headers_sent = True
        status, body = render_error(error, self.protocol)
        return JSONResponse(body, status_code=status)
