"""Structured logging for the gateway, built on structlog.

Log entries are rendered as JSON outside local runs and as colored console
lines locally. The request correlation id is carried in a context variable so
that every entry emitted while serving a request is tagged with it, including
entries emitted from streaming generators.
"""

import logging
import sys
from contextvars import ContextVar

import structlog

# Request correlation id, set by CorrelationIdMiddleware
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "uvicorn.access",
    "LiteLLM",
    "LiteLLM Router",
    "LiteLLM Proxy",
)


def add_correlation_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Processor that tags the entry with the current request's correlation id."""
    correlation_id = correlation_id_ctx.get()
    if correlation_id and "request_id" not in event_dict:
        event_dict["request_id"] = correlation_id
    return event_dict


def configure_logging(log_level: str, json_output: bool = True) -> None:
    """Route stdlib logging and structlog through one formatter.

    Args:
        log_level: Root logging level (INFO, DEBUG, ...)
        json_output: JSON lines when True, console rendering otherwise
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        A bound structlog logger
    """
    return structlog.get_logger(name)


def log_error_response(
    logger: structlog.stdlib.BoundLogger,
    status: int,
    event: str,
    **context,
) -> None:
    """Log an error response: 5xx at error severity, anything else at warning."""
    if status >= 500:
        logger.error(event, status=status, **context)
    else:
        logger.warning(event, status=status, **context)
