"""Upstream chat capability: message types, backend protocol and LiteLLM backend."""

from lm_gateway.platform.upstream.cancellation import CancellationToken
from lm_gateway.platform.upstream.channel import FragmentChannel
from lm_gateway.platform.upstream.protocol import ChatBackend

__all__ = [
    "CancellationToken",
    "ChatBackend",
    "FragmentChannel",
]
