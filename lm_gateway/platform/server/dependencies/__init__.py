"""FastAPI dependencies reading shared objects from app.state."""

from fastapi import Request

from lm_gateway.platform.server.dispatcher import Dispatcher
from lm_gateway.platform.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher
