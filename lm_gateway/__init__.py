"""lm-gateway - Chat completions over OpenAI and Anthropic wire protocols, backed by LiteLLM."""

from .platform.server.app import create_app
from .platform.settings import Settings


def app():
    """Create the FastAPI application instance."""
    settings = Settings()
    return create_app(settings)
