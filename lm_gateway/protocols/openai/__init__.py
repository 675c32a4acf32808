"""OpenAI Chat Completions wire protocol."""

from lm_gateway.protocols.openai.chat import ChatCompletionsHandler

__all__ = ["ChatCompletionsHandler"]
