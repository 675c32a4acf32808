"""HTTP server infrastructure module.

This module provides the FastAPI application and its lifecycle:
- Application factory
- Request dispatcher and route handlers
- Server state and health report
- Start/stop/restart management
"""

from lm_gateway.platform.server.app import create_app
from lm_gateway.platform.server.dispatcher import Dispatcher
from lm_gateway.platform.server.lifecycle import GatewayServer, ServerStartError
from lm_gateway.platform.server.state import ServerState

__all__ = [
    "create_app",
    "Dispatcher",
    "GatewayServer",
    "ServerStartError",
    "ServerState",
]
