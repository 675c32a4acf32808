"""Anthropic Messages request shapes.

Content blocks stay plain dicts: they are converted through a dispatch table
keyed by block type, and unknown block types are dropped.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class ToolSpec(BaseModel):
    name: str
    description: str | None = None
    input_schema: dict[str, Any] | None = None


class MessageParam(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Literal["user", "assistant"]
    content: str | list[dict[str, Any]]


class MessagesRequest(BaseModel):
    """Request body of POST /v1/messages.

    Sampling parameters and stop sequences are accepted and ignored.
    """

    model_config = ConfigDict(extra="allow")

    model: str
    max_tokens: int
    messages: list[MessageParam]
    system: str | list[dict[str, Any]] | None = None
    stream: bool = False
    tools: list[ToolSpec] | None = None
