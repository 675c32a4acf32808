"""Anthropic Messages wire protocol."""

from lm_gateway.protocols.anthropic.messages import MessagesHandler

__all__ = ["MessagesHandler"]
