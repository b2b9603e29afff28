"""structlog setup for domain events.

Every event carries the service name, the environment and the configured
storage backend, so JSON logs from several deployments can share one sink.
"""

import logging

import structlog

from ptracker.config import Settings

SERVICE_NAME = "problem-tracker"

# Per-statement and per-request chatter, only wanted while debugging.
_NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "aiosqlite")


def _service_context(settings: Settings) -> structlog.types.Processor:
    context = {
        "service": SERVICE_NAME,
        "environment": settings.environment,
        "backend": settings.backend,
    }

    def add_service_context(
        _logger: object, _method: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_context


def setup_logging(settings: Settings) -> None:
    """Configure structlog (JSON or console) and the stdlib root level."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _service_context(settings),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level)
    quiet = logging.DEBUG if settings.debug else max(level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
