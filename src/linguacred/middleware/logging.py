"""Structured logging: structlog and stdlib loggers share one renderer.

Service modules log through ``logging.getLogger(__name__)``; the middleware
logs through structlog. Both end up on a single handler attached to the
``linguacred`` logger, rendered by ``structlog.stdlib.ProcessorFormatter``.
"""

import logging

import structlog

from linguacred.config import Settings

APP_LOGGER = "linguacred"
HANDLER_NAME = "linguacred-structlog"


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def build_formatter(settings: Settings) -> structlog.stdlib.ProcessorFormatter:
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
    )


def setup_logging(settings: Settings) -> None:
    """Configure structlog and the ``linguacred`` stdlib logger.

    Safe to call more than once: the handler installed by a previous call
    is replaced, never duplicated.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(build_formatter(settings))

    app_logger = logging.getLogger(APP_LOGGER)
    for existing in list(app_logger.handlers):
        if existing.get_name() == HANDLER_NAME:
            app_logger.removeHandler(existing)
    app_logger.addHandler(handler)
    app_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
