"""Tests for CitationWorkflow."""

import pytest

from src.citations.manager import AnnotationManager
from src.citations.markers import render_marker
from src.citations.selection import ContentSelectionProvider
from src.citations.workflow import CitationWorkflow
from src.core.exceptions import CitationValidationError, InvalidSourceError
from src.schemas.citations import CitationDocument, InlineStyle, Source


@pytest.fixture
def workflow(doc: CitationDocument, manager: AnnotationManager) -> CitationWorkflow:
    return CitationWorkflow(doc, manager)


class TestCitationWorkflow:
    """Tests for the start/capture/commit/cancel cycle."""

    def test_capture_ignored_when_not_annotating(self, workflow: CitationWorkflow, content: str) -> None:
        provider = ContentSelectionProvider(content)
        provider.select_text("an armistice")

        assert workflow.capture(provider) is None
        assert workflow.pending_selection is None

    def test_commit_creates_citation(
        self,
        workflow: CitationWorkflow,
        doc: CitationDocument,
        content: str,
        smith: Source,
    ) -> None:
        provider = ContentSelectionProvider(content)
        provider.select_text("an armistice")
        workflow.start()
        workflow.capture(provider)

        change = workflow.commit(content, smith.id)

        assert "an armistice" + render_marker(1, InlineStyle.FOOTNOTES) in change.content
        assert doc.note_ids == [1]
        assert not workflow.is_annotating
        assert workflow.pending_selection is None

    def test_lost_focus_keeps_previous_selection(self, workflow: CitationWorkflow, content: str) -> None:
        provider = ContentSelectionProvider(content)
        provider.select_text("a long crisis")
        workflow.start()
        workflow.capture(provider)

        provider.clear()
        selection = workflow.capture(provider)

        assert selection is not None
        assert selection.text == "a long crisis"

    def test_commit_without_selection(self, workflow: CitationWorkflow, content: str, smith: Source) -> None:
        workflow.start()

        with pytest.raises(CitationValidationError):
            workflow.commit(content, smith.id)

        assert workflow.is_annotating

    def test_commit_unknown_source_stays_annotating(self, workflow: CitationWorkflow, doc: CitationDocument, content: str) -> None:
        provider = ContentSelectionProvider(content)
        provider.select_text("an armistice")
        workflow.start()
        workflow.capture(provider)

        with pytest.raises(InvalidSourceError):
            workflow.commit(content, "source-missing")

        assert workflow.is_annotating
        assert workflow.pending_selection is not None
        assert doc.annotations == []

    def test_commit_when_not_annotating(self, workflow: CitationWorkflow, content: str, smith: Source) -> None:
        with pytest.raises(CitationValidationError) as exc_info:
            workflow.commit(content, smith.id)

        assert exc_info.value.field == "workflow"

    def test_cancel(self, workflow: CitationWorkflow, doc: CitationDocument, content: str) -> None:
        provider = ContentSelectionProvider(content)
        provider.select_text("an armistice")
        workflow.start()
        workflow.capture(provider)

        workflow.cancel()

        assert not workflow.is_annotating
        assert workflow.pending_selection is None
        assert doc.annotations == []
