"""Start, stop and restart of an in-process gateway server.

The listening socket is bound here rather than by uvicorn so that a busy port
is reported as a ServerStartError and the actual port (including an
ephemeral one, port 0) is known before the server starts serving.
"""

import asyncio
import errno
import socket

import uvicorn

from lm_gateway.platform.observability import get_logger
from lm_gateway.platform.server.app import create_app
from lm_gateway.platform.server.state import ServerState
from lm_gateway.platform.settings import Settings
from lm_gateway.platform.upstream.protocol import ChatBackend

logger = get_logger(__name__)

_STARTUP_POLL_SECONDS = 0.01


class ServerStartError(Exception):
    """The server could not be started."""


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind a TCP socket for the server.

    Raises:
        ServerStartError: When the address is taken or cannot be bound
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        if e.errno == errno.EADDRINUSE:
            raise ServerStartError(f"port {port} is already in use") from e
        raise ServerStartError(f"cannot bind {host}:{port}: {e.strerror}") from e
    return sock


class GatewayServer:
    """Runs the gateway on uvicorn inside the current event loop.

    Args:
        settings: Application settings; app_http.host/port select the address
        backend: Upstream chat capability, LiteLLM by default
    """

    def __init__(self, settings: Settings, backend: ChatBackend | None = None):
        self.settings = settings
        self.backend = backend
        self._state = ServerState()
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def state(self) -> ServerState:
        """A point-in-time copy of the server state."""
        return self._state.snapshot()

    async def start(self, port: int | None = None) -> None:
        """Bind and start serving; returns once the server accepts connections.

        Args:
            port: Overrides the configured port; 0 picks a free port

        Raises:
            ServerStartError: When already running or the port is unavailable
        """
        if self.is_running:
            raise ServerStartError("server is already running")

        host = self.settings.app_http.host
        sock = bind_socket(host, self.settings.app_http.port if port is None else port)
        bound_port = sock.getsockname()[1]

        settings = self.settings.model_copy(
            update={"app_http": self.settings.app_http.model_copy(update={"port": bound_port})}
        )
        config = uvicorn.Config(
            create_app(settings, self.backend, self._state),
            log_config=None,
            timeout_keep_alive=settings.gateway.keep_alive_timeout,
        )
        server = uvicorn.Server(config)
        task = asyncio.create_task(server.serve(sockets=[sock]))

        while not server.started:
            if task.done():
                sock.close()
                if task.exception() is not None:
                    raise ServerStartError("server failed to start") from task.exception()
                raise ServerStartError("server exited during startup")
            await asyncio.sleep(_STARTUP_POLL_SECONDS)

        self._server = server
        self._task = task
        logger.info("server listening", host=host, port=bound_port)

    async def stop(self) -> None:
        """Stop gracefully, forcing exit after gateway.shutdown_timeout.

        Stopping a server that is not running does nothing.
        """
        if self._server is None or self._task is None:
            return
        server, task = self._server, self._task

        server.should_exit = True
        try:
            await asyncio.wait_for(
                asyncio.shield(task), timeout=self.settings.gateway.shutdown_timeout
            )
        except TimeoutError:
            logger.warning(
                "graceful shutdown timed out, forcing exit",
                timeout=self.settings.gateway.shutdown_timeout,
            )
            server.force_exit = True
            await task
        finally:
            self._server = None
            self._task = None
        logger.info("server stopped")

    async def restart(self) -> None:
        """Stop and start again on the same port."""
        port = self._state.port
        await self.stop()
        await self.start(port)

    async def serve_forever(self) -> None:
        """Run until the process is signalled to exit."""
        await self.start()
        try:
            if self._task is not None:
                await self._task
        finally:
            await self.stop()
