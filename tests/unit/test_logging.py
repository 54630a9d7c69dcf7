"""Unit tests for src/core/logging module.

Tests structured logging configuration, context binding and logger creation.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import structlog

from src.core import logging as citation_logging
from src.core.config import Settings
from src.core.logging import (
    ServiceContext,
    bind_current_excerpt,
    build_processors,
    configure_logging,
    get_logger,
    is_configured,
)


@pytest.fixture
def unconfigured(monkeypatch: pytest.MonkeyPatch):
    """Start unconfigured and restore structlog defaults afterwards."""
    monkeypatch.setattr(citation_logging, "_configured", False)
    yield
    structlog.reset_defaults()


class TestBuildProcessors:
    """Tests for the renderer choice."""

    def test_development_uses_console_renderer(self) -> None:
        processors = build_processors(Settings(environment="development"))

        assert type(processors[-1]).__name__ == "ConsoleRenderer"
        assert structlog.contextvars.merge_contextvars in processors

    @pytest.mark.parametrize("environment", ["production", "staging"])
    def test_deployed_environments_use_json(self, environment: str) -> None:
        processors = build_processors(Settings(environment=environment))

        assert type(processors[-1]).__name__ == "JSONRenderer"


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configures_once(self, unconfigured) -> None:
        with patch("src.core.logging.structlog.configure") as mock_configure:
            assert configure_logging(Settings(log_level="DEBUG"))
            assert not configure_logging(Settings(log_level="DEBUG"))

            mock_configure.assert_called_once()
        assert is_configured()

    def test_force_reconfigures(self, unconfigured) -> None:
        with patch("src.core.logging.structlog.configure") as mock_configure:
            configure_logging(Settings())
            assert configure_logging(Settings(environment="production"), force=True)

            assert mock_configure.call_count == 2
            processors = mock_configure.call_args.kwargs["processors"]
            assert type(processors[-1]).__name__ == "JSONRenderer"

    def test_defaults_to_cached_settings(self, unconfigured) -> None:
        with patch("src.core.logging.get_settings") as mock_settings:
            mock_settings.return_value = Settings(environment="staging")

            with patch("src.core.logging.structlog.configure") as mock_configure:
                configure_logging()

                mock_settings.assert_called_once()
                processors = mock_configure.call_args.kwargs["processors"]
                assert type(processors[-1]).__name__ == "JSONRenderer"

    def test_json_entry_carries_context(self, unconfigured, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(Settings(environment="production", service_name="citation-engine"))
        bind_current_excerpt("excerpt-1")

        get_logger("src.citations.manager").info("annotation_created", note_id=1)

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["event"] == "annotation_created"
        assert entry["note_id"] == 1
        assert entry["current_excerpt"] == "excerpt-1"
        assert entry["service"] == "citation-engine"
        assert entry["environment"] == "production"
        assert entry["level"] == "info"

    def test_level_filters_entries(self, unconfigured, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(Settings(environment="production", log_level="WARNING"))

        get_logger(__name__).info("document_saved")
        get_logger(__name__).warning("marker_sync_warning")

        lines = capsys.readouterr().err.strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["marker_sync_warning"]


class TestBindCurrentExcerpt:
    """Tests for the current excerpt log context."""

    def test_bind_and_unbind(self) -> None:
        bind_current_excerpt("excerpt-1")
        assert structlog.contextvars.get_contextvars()["current_excerpt"] == "excerpt-1"

        bind_current_excerpt(None)
        assert "current_excerpt" not in structlog.contextvars.get_contextvars()

    def test_unbind_when_unbound(self) -> None:
        bind_current_excerpt(None)

        assert structlog.contextvars.get_contextvars() == {}


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger_with_name(self) -> None:
        with patch("src.core.logging.structlog.get_logger") as mock_get:
            mock_get.return_value = MagicMock()

            get_logger("src.citations.manager")

            mock_get.assert_called_once_with("src.citations.manager")

    def test_get_logger_without_name(self) -> None:
        with patch("src.core.logging.structlog.get_logger") as mock_get:
            mock_get.return_value = MagicMock()

            get_logger()

            mock_get.assert_called_once_with(None)


class TestServiceContext:
    """Tests for the ServiceContext processor."""

    def test_adds_service_context(self) -> None:
        processor = ServiceContext(Settings(service_name="citation-engine", environment="test"))

        result = processor(None, "info", {"event": "annotation_created"})

        assert result["service"] == "citation-engine"
        assert result["environment"] == "test"

    def test_preserves_existing_fields(self) -> None:
        processor = ServiceContext(Settings(environment="test"))
        event_dict = {
            "event": "annotation_deleted",
            "excerpt_id": "excerpt-1",
            "note_id": 2,
            "service": "override",
        }

        result = processor(None, "info", event_dict)

        assert result["excerpt_id"] == "excerpt-1"
        assert result["note_id"] == 2
        assert result["service"] == "override"
