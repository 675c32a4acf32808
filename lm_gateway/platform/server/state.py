"""Server status and request counters."""

import time
from dataclasses import dataclass, replace


@dataclass
class ServerState:
    """Mutable status of one gateway server.

    Owned by the Dispatcher and handed to whatever reports health. Counters
    only grow while the server runs; they are reset when it (re)starts.

    Attributes:
        is_running: Whether the server is accepting connections
        host: Bound host, None while stopped
        port: Bound port, None while stopped
        start_time: Monotonic timestamp of the last start
        request_count: Requests dispatched since the last start
        error_count: Error responses rendered since the last start
    """

    is_running: bool = False
    host: str | None = None
    port: int | None = None
    start_time: float | None = None
    request_count: int = 0
    error_count: int = 0

    def mark_started(self, host: str, port: int) -> None:
        self.reset()
        self.is_running = True
        self.host = host
        self.port = port
        self.start_time = time.monotonic()

    def mark_stopped(self) -> None:
        self.is_running = False
        self.host = None
        self.port = None
        self.start_time = None

    def reset(self) -> None:
        self.request_count = 0
        self.error_count = 0

    @property
    def uptime_ms(self) -> int:
        if not self.is_running or self.start_time is None:
            return 0
        return int((time.monotonic() - self.start_time) * 1000)

    def snapshot(self) -> "ServerState":
        """A copy that does not change as requests are served."""
        return replace(self)
