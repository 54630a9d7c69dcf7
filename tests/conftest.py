"""Test configuration and shared fixtures.

Pattern: Pytest fixtures, conftest.py
"""

from collections.abc import Callable

import pytest
import structlog

from src.citations.formatter import get_style
from src.citations.manager import AnnotationManager
from src.citations.markers import plain_text
from src.citations.registry import SourceRegistry
from src.core.config import Settings
from src.schemas.citations import CitationDocument, Source, TextSelection


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        environment="test",
        log_level="DEBUG",
        default_style_id="chicago",
        anchor_search_enabled=True,
        append_marker_when_missing=True,
    )


# ============================================================================
# Logging Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def clean_log_context():
    """Keep structlog context variables from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def registry() -> SourceRegistry:
    return SourceRegistry()


@pytest.fixture
def manager(registry: SourceRegistry, test_settings: Settings) -> AnnotationManager:
    return AnnotationManager(registry=registry, settings=test_settings)


@pytest.fixture
def doc() -> CitationDocument:
    """Empty document using footnote markers."""
    return CitationDocument(excerpt_id="excerpt-1", style=get_style("chicago"))


@pytest.fixture
def content() -> str:
    return (
        "<p>In 1914 the war began after a long crisis.</p>"
        "<p>Armies mobilized within <b>weeks</b> and the front stabilized.</p>"
        "<p>By 1918 the war ended with an armistice.</p>"
    )


# ============================================================================
# Source Fixtures
# ============================================================================

@pytest.fixture
def smith_data() -> dict:
    return {
        "type": "book",
        "title": "A History of the War",
        "author": "Smith, J.",
        "year": 2020,
        "publisher": "Penguin",
        "location": "London",
    }


@pytest.fixture
def jones_data() -> dict:
    return {
        "type": "journal",
        "title": "Mobilization Reconsidered",
        "author": "Jones, Mary",
        "year": 2018,
        "publication": "Journal of Modern History",
        "volume": "90",
        "issue": "2",
        "pages": "211-240",
        "doi": "10.1086/697000",
    }


@pytest.fixture
def smith(registry: SourceRegistry, doc: CitationDocument, smith_data: dict) -> Source:
    return registry.add_source(doc, smith_data)


@pytest.fixture
def jones(registry: SourceRegistry, doc: CitationDocument, jones_data: dict) -> Source:
    return registry.add_source(doc, jones_data)


# ============================================================================
# Selection Fixtures
# ============================================================================

@pytest.fixture
def select(content: str) -> Callable[..., TextSelection]:
    """Build a selection for the n-th occurrence of text in the plain-text projection."""

    def _select(text: str, occurrence: int = 0, html: str | None = None) -> TextSelection:
        plain = plain_text(html if html is not None else content)
        start = -1
        for _ in range(occurrence + 1):
            start = plain.index(text, start + 1)
        return TextSelection(text=text, start_index=start, end_index=start + len(text))

    return _select
