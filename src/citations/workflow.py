"""Citation workflow: annotating mode around the annotation manager.

start() enters annotating mode, capture() records the editor selection,
commit() turns it into a citation and leaves annotating mode, cancel()
abandons the workflow. Nothing touches the document or content before
commit(), so abandoning at any point has no side effects.

A capture that finds no selection keeps the previous one: modal dialogs
(e.g. a source form) steal editor focus mid-workflow and must not lose
the user's highlight.
"""

from __future__ import annotations

from src.citations.manager import AnnotationChange, AnnotationManager
from src.citations.selection import SelectionCapture, SelectionProvider
from src.core.exceptions import CitationValidationError
from src.core.logging import get_logger
from src.schemas.citations import CitationDocument, TextSelection


logger = get_logger(__name__)


class CitationWorkflow:
    """Drive one "cite selected text" interaction for a document."""

    def __init__(self, doc: CitationDocument, manager: AnnotationManager | None = None) -> None:
        self.doc = doc
        self.manager = manager or AnnotationManager()
        self.is_annotating = False
        self.pending_selection: TextSelection | None = None

    def start(self) -> None:
        self.is_annotating = True
        logger.debug("annotating_started", excerpt_id=self.doc.excerpt_id)

    def capture(self, provider: SelectionProvider) -> TextSelection | None:
        """Record the provider's current selection while annotating.

        Returns:
            The pending selection after the capture
        """
        if not self.is_annotating:
            return None
        selection = SelectionCapture(provider).get_current_selection()
        if selection is not None:
            self.pending_selection = selection
        return self.pending_selection

    def commit(self, content: str, source_id: str) -> AnnotationChange:
        """Cite the pending selection with source_id and leave annotating mode.

        On failure the workflow stays in annotating mode with its
        selection, so the user can pick another source.

        Raises:
            CitationValidationError: Not annotating, or nothing selected
            InvalidSourceError: Unknown source
        """
        if not self.is_annotating:
            raise CitationValidationError(
                "Citation workflow is not active",
                field="workflow",
                excerpt_id=self.doc.excerpt_id,
            )
        change = self.manager.create_annotation(self.doc, content, self.pending_selection, source_id)
        self.stop()
        return change

    def cancel(self) -> None:
        logger.debug("annotating_cancelled", excerpt_id=self.doc.excerpt_id)
        self.stop()

    def stop(self) -> None:
        self.is_annotating = False
        self.pending_selection = None


__all__ = [
    "CitationWorkflow",
]
