"""Gateway infrastructure module.

This module provides the pieces both wire protocols are built on:
- Upstream chat capability protocol and LiteLLM backend
- Error taxonomy
- FastAPI server, dispatcher and lifecycle
- Settings and observability utilities
"""

from lm_gateway.platform.errors import GatewayError, UpstreamError
from lm_gateway.platform.settings import Settings
from lm_gateway.platform.upstream import CancellationToken, ChatBackend

__all__ = [
    "CancellationToken",
    "ChatBackend",
    "GatewayError",
    "Settings",
    "UpstreamError",
]
