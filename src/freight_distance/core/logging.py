"""structlog setup for the distance service.

JSON lines in production (or with ``LOG_FORMAT=json``), coloured console
output otherwise. Every entry carries the service name, environment and
version, plus the ``X-Request-ID`` of the request being handled.

Usage:
    from freight_distance.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("distance_cache_hit", cache_id="...", pickup_address_id="...")
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from freight_distance.config import Settings

SERVICE_NAME = "freight-distance"

_request_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str) -> None:
    _request_id_ctx.set(correlation_id)


def clear_correlation_id() -> None:
    _request_id_ctx.set(None)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach the current request id, if any."""
    correlation_id = _request_id_ctx.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def service_context(settings: Settings) -> Processor:
    """Build a processor stamping service, environment and version."""
    context = {
        "service": SERVICE_NAME,
        "environment": settings.app_env.value,
        "version": settings.app_version,
    }

    def add_service_context(
        logger: logging.Logger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_context


def configure_logging(settings: Settings) -> None:
    """Route structlog and stdlib logging through one stdout handler."""
    log_level = getattr(logging, settings.log_level.value, logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_correlation_id,
        service_context(settings),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    # Korean addresses and provider messages stay readable in JSON output
    renderer: Processor
    if settings.use_json_logs:
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
        processors = [*shared_processors, structlog.processors.format_exc_info, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.is_development)
        processors = [*shared_processors, renderer]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_context(**kwargs: Any) -> structlog.contextvars.bound_contextvars:
    """Bind values (e.g. ``requester_id``) to every entry logged inside the block."""
    return structlog.contextvars.bound_contextvars(**kwargs)
