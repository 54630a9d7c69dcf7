"""Structured logging for the citation engine.

CitationStore, the engine's entry point, calls configure_logging() when
it is created; later calls are no-ops unless forced. Every entry carries
the service name and environment, and while an excerpt is current in a
store its id is attached as ``current_excerpt``.

Output:
- production / staging: one JSON object per line on stderr
- anything else: human-readable console lines on stderr
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from src.core.config import Settings, get_settings


JSON_ENVIRONMENTS = frozenset({"production", "staging"})

_configured = False


class ServiceContext:
    """Processor stamping service and environment onto each entry."""

    def __init__(self, settings: Settings) -> None:
        self.service = settings.service_name
        self.environment = settings.environment

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        event_dict.setdefault("service", self.service)
        event_dict.setdefault("environment", self.environment)
        return event_dict


def build_processors(settings: Settings) -> list[Processor]:
    """Processor chain for the given settings, renderer last."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        ServiceContext(settings),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.environment in JSON_ENVIRONMENTS:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def configure_logging(settings: Settings | None = None, *, force: bool = False) -> bool:
    """Configure structlog once per process.

    Args:
        settings: Settings to configure from; the cached settings by default
        force: Reconfigure even if logging was already configured

    Returns:
        True when the configuration was applied, False when skipped.
    """
    global _configured
    if _configured and not force:
        return False

    settings = settings or get_settings()
    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # Module loggers exist before the store configures logging.
        cache_logger_on_first_use=False,
    )
    _configured = True
    return True


def is_configured() -> bool:
    return _configured


def bind_current_excerpt(excerpt_id: str | None) -> None:
    """Attach the current excerpt id to later entries, or detach it with None."""
    if excerpt_id is None:
        structlog.contextvars.unbind_contextvars("current_excerpt")
    else:
        structlog.contextvars.bind_contextvars(current_excerpt=excerpt_id)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Example:
        ```python
        from src.core.logging import get_logger

        logger = get_logger(__name__)
        logger.info("annotation_created", excerpt_id="abc123", note_id=1)
        ```
    """
    return structlog.get_logger(name)


__all__ = [
    "JSON_ENVIRONMENTS",
    "ServiceContext",
    "bind_current_excerpt",
    "build_processors",
    "configure_logging",
    "get_logger",
    "is_configured",
]
