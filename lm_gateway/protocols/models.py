"""GET /v1/models in either protocol's listing shape."""

import time
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from lm_gateway.platform.upstream.messages import ChatModel
from lm_gateway.protocols.common import WireProtocol

UNKNOWN_OWNER = "unknown"


def openai_model_list(models: Sequence[ChatModel], created: int | None = None) -> dict[str, Any]:
    """Flat list object: {"object": "list", "data": [...]}."""
    created = int(time.time()) if created is None else created
    return {
        "object": "list",
        "data": [
            {
                "id": model.id,
                "object": "model",
                "created": created,
                "owned_by": model.vendor or UNKNOWN_OWNER,
            }
            for model in models
        ],
    }


def anthropic_model_page(
    models: Sequence[ChatModel], created_at: datetime | None = None
) -> dict[str, Any]:
    """A single, complete page: has_more is always False."""
    timestamp = (created_at or datetime.now(UTC)).isoformat()
    data = [
        {
            "type": "model",
            "id": model.id,
            "display_name": model.display_name,
            "created_at": timestamp,
        }
        for model in models
    ]
    return {
        "data": data,
        "first_id": data[0]["id"] if data else None,
        "last_id": data[-1]["id"] if data else None,
        "has_more": False,
    }


def model_listing(models: Sequence[ChatModel], protocol: WireProtocol) -> dict[str, Any]:
    if protocol is WireProtocol.ANTHROPIC:
        return anthropic_model_page(models)
    return openai_model_list(models)
