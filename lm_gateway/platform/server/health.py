"""Health report for GET /health."""

import datetime
from typing import Any

from lm_gateway.platform.constants import ANTHROPIC_MESSAGES_PATH, OPENAI_CHAT_COMPLETIONS_PATH
from lm_gateway.platform.server.state import ServerState
from lm_gateway.platform.upstream.messages import ChatModel

HEALTHY = "healthy"


def health_report(state: ServerState, models: list[ChatModel]) -> dict[str, Any]:
    """Describe the server's status, counters, and model availability."""
    return {
        "status": HEALTHY,
        "server": {
            "running": state.is_running,
            "uptime": state.uptime_ms,
            "requests": state.request_count,
            "errors": state.error_count,
        },
        "languageModels": {
            "available": len(models),
            "accessible": bool(models),
        },
        "endpoints": {
            "openai": OPENAI_CHAT_COMPLETIONS_PATH,
            "anthropic": ANTHROPIC_MESSAGES_PATH,
        },
        "timestamp": datetime.datetime.now(tz=datetime.UTC).isoformat(),
    }
