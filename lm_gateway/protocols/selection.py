"""Resolution of a requested model name against discovered models."""

from collections.abc import Sequence

from lm_gateway.platform.upstream.messages import ChatModel


def select_model(models: Sequence[ChatModel], requested: str) -> ChatModel | None:
    """Find the model a client asked for.

    Resolution order:
    1. Exact match on the model id
    2. The requested name contains a model's family, case-insensitively
    3. No match

    Args:
        models: Discovered models, in preference order
        requested: Model name from the request body

    Returns:
        The selected model, or None
    """
    for model in models:
        if model.id == requested:
            return model

    lowered = requested.lower()
    for model in models:
        if model.family and model.family.lower() in lowered:
            return model

    return None
