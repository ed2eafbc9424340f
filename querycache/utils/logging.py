"""Structured logging setup using structlog.

One shared processor chain (context vars, log level, timestamps, stack info)
feeds either a coloured ConsoleRenderer for local development or a
JSONRenderer for production.  Production is detected from
``QUERYCACHE_APP_ENV`` (or the host's ``APP_ENV``), or forced via
``json_output``.

querycache is a library, so the stdlib bridge is optional: a host that
already owns its root logger passes ``bridge_stdlib=False`` and keeps its
handlers.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from querycache.config.settings import Settings


def _is_production() -> bool:
    app_env = os.environ.get("QUERYCACHE_APP_ENV") or os.environ.get("APP_ENV", "development")
    return app_env == "production"


def _shared_processors() -> list[structlog.types.Processor]:
    # contextvars first, then level/timestamps, then exceptions.
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _bridge_stdlib(
    shared: list[structlog.types.Processor],
    renderer: structlog.types.Processor,
    log_level: str,
) -> None:
    """Route stdlib ``logging`` records through the structlog renderer."""
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    bridge_stdlib: bool = True,
) -> structlog.BoundLogger:
    """Configure structlog for querycache and, optionally, stdlib logging.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output.  When False, JSON is still used if
                     the environment says ``production``.
        bridge_stdlib: Replace the root logger's handlers with one that
                       renders through the same processor chain.

    Returns:
        A configured structlog BoundLogger.
    """
    level = log_level.upper()
    shared = _shared_processors()

    if json_output or _is_production():
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if bridge_stdlib:
        _bridge_stdlib(shared, renderer, level)

    return structlog.get_logger()


def configure_from_settings(settings: Settings, bridge_stdlib: bool = True) -> structlog.BoundLogger:
    """Configure logging from ``settings.log_level`` and ``settings.app_env``."""
    return configure_logging(
        log_level=settings.log_level,
        json_output=settings.app_env == "production",
        bridge_stdlib=bridge_stdlib,
    )


def get_logger(name: str, **bindings: object) -> structlog.BoundLogger:
    """Get a named structlog logger, optionally bound to extra context.

    Configures logging with defaults on first use if the host has not.

    Args:
        name: Logger name, typically the module name.
        **bindings: Key/value context bound to every event, e.g.
                    ``cache="CountryCache"``.
    """
    if not structlog.is_configured():
        configure_logging()

    logger = structlog.get_logger(logger_name=name)
    if bindings:
        logger = logger.bind(**bindings)
    return logger
