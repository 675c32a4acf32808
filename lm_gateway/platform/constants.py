"""Wire-level constants shared by the server and both protocols."""

SERVICE_NAME = "lm-gateway"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8099

# 10 MiB
MAX_BODY_BYTES = 10 * 1024 * 1024

SYSTEM_MARKER = "[SYSTEM]"

OPENAI_CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
ANTHROPIC_MESSAGES_PATH = "/v1/messages"
MODELS_PATH = "/v1/models"
HEALTH_PATH = "/health"
METRICS_PATH = "/metrics"

# Paths containing this segment are answered in Anthropic format.
ANTHROPIC_PATH_SEGMENT = "messages"

ANTHROPIC_VERSION_HEADER = "anthropic-version"

JSON_CONTENT_TYPE = "application/json"
SSE_CONTENT_TYPE = "text/event-stream"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Requested-With",
    "Access-Control-Max-Age": "86400",
}

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
