"""Bugsnag error reporting.

Error-level log entries (5xx responses, unexpected exceptions) are forwarded
to Bugsnag outside local runs.
"""

import logging

import bugsnag
from bugsnag.handlers import BugsnagHandler

from lm_gateway.platform.settings import BugsnagSettings


def initialize_bugsnag(settings: BugsnagSettings) -> bool:
    """Configure Bugsnag and attach a reporting handler to the root logger.

    Args:
        settings: Bugsnag API key and release stage

    Returns:
        True if reporting was enabled. Local runs and a missing API key leave
        reporting disabled.
    """
    if settings.release_stage == "local" or not settings.api_key:
        return False
    bugsnag.configure(
        api_key=settings.api_key,
        release_stage=settings.release_stage,
        auto_notify=True,
    )
    handler = BugsnagHandler()
    handler.setLevel(logging.ERROR)
    logging.getLogger().addHandler(handler)
    return True
