"""Core module - Configuration, logging, exceptions, and shared constants.

Exports:
    - Settings, get_settings: Pydantic Settings configuration
    - configure_logging, bind_current_excerpt, get_logger: Structured logging (structlog)
    - Exception classes: CitationError, CitationValidationError, etc.
"""

from src.core.config import Settings, get_settings
from src.core.exceptions import (
    AnnotationNotFoundError,
    CitationError,
    CitationValidationError,
    InvalidSourceError,
    MarkerSyncWarning,
    ReferentialError,
    SourceInUseError,
    SourceNotFoundError,
)
from src.core.logging import bind_current_excerpt, configure_logging, get_logger


__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Exceptions
    "AnnotationNotFoundError",
    "CitationError",
    "CitationValidationError",
    "InvalidSourceError",
    "MarkerSyncWarning",
    "ReferentialError",
    "SourceInUseError",
    "SourceNotFoundError",
    # Logging
    "bind_current_excerpt",
    "configure_logging",
    "get_logger",
]
