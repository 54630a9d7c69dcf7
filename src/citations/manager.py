"""Annotation manager.

Owns the list of citations of a CitationDocument and the note id
numbering. Every public operation is a single in-memory transaction:
inputs are validated first, then the document and the content string are
changed together and the new content is handed back to the caller, who
persists it alongside the document.

Numbering invariant: note ids of a document are exactly 1..N, in
citation-list order. New citations are appended to the end of the list
regardless of where the cited text sits in the document.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from src.citations.markers import MarkerReport, MarkerSynchronizer
from src.citations.registry import SourceRegistry
from src.core.config import Settings, get_settings
from src.core.constants import ANNOTATION_ID_PREFIX
from src.core.exceptions import (
    AnnotationNotFoundError,
    CitationValidationError,
    InvalidSourceError,
    MarkerSyncWarning,
    SourceNotFoundError,
)
from src.core.logging import get_logger
from src.schemas.citations import (
    CitationDocument,
    CitationStyle,
    TextAnnotation,
    TextSelection,
    utc_now,
)


logger = get_logger(__name__)


@dataclass
class AnnotationChange:
    """Result of an annotation operation.

    Attributes:
        content: Content with markers synchronized to the new state
        annotation: The created or updated annotation, if any
        removed: Annotations deleted by the operation
        renumbered: Old note id -> new note id for every changed number
        warnings: Non-fatal marker placement problems to show the user
    """

    content: str
    annotation: TextAnnotation | None = None
    removed: list[TextAnnotation] = field(default_factory=list)
    renumbered: dict[int, int] = field(default_factory=dict)
    warnings: list[MarkerSyncWarning] = field(default_factory=list)


class AnnotationManager:
    """Create, delete and reorder citations while keeping markers in sync.

    Example:
        >>> manager = AnnotationManager()
        >>> change = manager.create_annotation(doc, content, selection, source.id)
        >>> change.annotation.note_id
        1
    """

    def __init__(
        self,
        registry: SourceRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry or SourceRegistry()
        self.settings = settings or get_settings()

    def synchronizer(self, doc: CitationDocument) -> MarkerSynchronizer:
        return MarkerSynchronizer(
            doc.style,
            anchor_search=self.settings.anchor_search_enabled,
            append_when_missing=self.settings.append_marker_when_missing,
        )

    def next_note_id(self, doc: CitationDocument) -> int:
        return doc.max_note_id() + 1

    def list_annotations(self, doc: CitationDocument) -> list[TextAnnotation]:
        """Annotations in citation-list order."""
        return list(doc.annotations)

    # =========================================================================
    # Create
    # =========================================================================

    def create_annotation(
        self,
        doc: CitationDocument,
        content: str,
        selection: TextSelection | None,
        source_id: str,
    ) -> AnnotationChange:
        """Cite the selected text with a source.

        Args:
            doc: Document to change
            content: Current HTML content
            selection: Captured selection
            source_id: Source to cite

        Returns:
            AnnotationChange with the new annotation and content

        Raises:
            CitationValidationError: No selection, or an invalid one
            InvalidSourceError: source_id is not in the document
        """
        self._require_selection(doc, selection)
        if doc.get_source(source_id) is None:
            logger.error("invalid_source", excerpt_id=doc.excerpt_id, source_id=source_id)
            raise InvalidSourceError(source_id, doc.excerpt_id)

        note_id = self.next_note_id(doc)
        placed = self.synchronizer(doc).insert_marker(
            content,
            selection.text,
            note_id,
            anchor=selection.start_index,
        )

        now = utc_now()
        annotation = TextAnnotation(
            id=f"{ANNOTATION_ID_PREFIX}-{uuid.uuid4().hex}",
            excerpt_id=doc.excerpt_id,
            source_id=source_id,
            start_index=selection.start_index,
            end_index=selection.end_index,
            selected_text=selection.text,
            note_id=note_id,
            created_at=now,
            updated_at=now,
        )
        doc.annotations.append(annotation)
        doc.touch()

        logger.info(
            "annotation_created",
            excerpt_id=doc.excerpt_id,
            annotation_id=annotation.id,
            source_id=source_id,
            note_id=note_id,
        )
        return AnnotationChange(content=placed.content, annotation=annotation, warnings=placed.warnings)

    # =========================================================================
    # Delete
    # =========================================================================

    def delete_annotation(
        self,
        doc: CitationDocument,
        content: str,
        annotation_id: str,
    ) -> AnnotationChange:
        """Delete a citation and close the gap in the numbering.

        Every annotation numbered above the deleted one moves down by one.
        The deleted marker is removed before the others are renumbered.

        Raises:
            AnnotationNotFoundError: No such annotation
        """
        target = doc.get_annotation(annotation_id)
        if target is None:
            logger.error("annotation_not_found", excerpt_id=doc.excerpt_id, annotation_id=annotation_id)
            raise AnnotationNotFoundError(annotation_id, doc.excerpt_id)

        sync = self.synchronizer(doc)
        removed = sync.remove_marker(content, target.note_id)

        mapping = {
            a.note_id: a.note_id - 1
            for a in doc.annotations
            if a.note_id > target.note_id
        }
        renumbered = sync.renumber_markers(removed.content, mapping)

        now = utc_now()
        doc.annotations = [a for a in doc.annotations if a.id != annotation_id]
        for annotation in doc.annotations:
            if annotation.note_id in mapping:
                annotation.note_id = mapping[annotation.note_id]
                annotation.updated_at = now
        doc.touch()

        logger.info(
            "annotation_deleted",
            excerpt_id=doc.excerpt_id,
            annotation_id=annotation_id,
            note_id=target.note_id,
            renumbered=len(mapping),
        )
        return AnnotationChange(
            content=renumbered.content,
            removed=[target],
            renumbered=mapping,
            warnings=removed.warnings + renumbered.warnings,
        )

    # =========================================================================
    # Reorder
    # =========================================================================

    def reorder_annotations(
        self,
        doc: CitationDocument,
        content: str,
        from_index: int,
        to_index: int,
    ) -> AnnotationChange:
        """Move the citation at from_index to to_index and renumber 1..N.

        List order is authoritative, so citations may end up numbered out
        of reading order.

        Raises:
            CitationValidationError: An index is out of range
        """
        count = len(doc.annotations)
        for name, value in (("from_index", from_index), ("to_index", to_index)):
            if not 0 <= value < count:
                raise CitationValidationError(
                    f"{name} {value} is out of range for {count} annotation(s)",
                    field=name,
                    value=value,
                    excerpt_id=doc.excerpt_id,
                )

        ordered = list(doc.annotations)
        ordered.insert(to_index, ordered.pop(from_index))

        mapping = {
            annotation.note_id: position
            for position, annotation in enumerate(ordered, start=1)
            if annotation.note_id != position
        }
        synced = self.synchronizer(doc).renumber_markers(content, mapping)

        now = utc_now()
        for position, annotation in enumerate(ordered, start=1):
            if annotation.note_id != position:
                annotation.note_id = position
                annotation.updated_at = now
        doc.annotations = ordered
        doc.touch()

        logger.info(
            "annotations_reordered",
            excerpt_id=doc.excerpt_id,
            from_index=from_index,
            to_index=to_index,
            renumbered=len(mapping),
        )
        return AnnotationChange(content=synced.content, renumbered=mapping, warnings=synced.warnings)

    # =========================================================================
    # Relocate
    # =========================================================================

    def update_annotation_location(
        self,
        doc: CitationDocument,
        content: str,
        annotation_id: str,
        selection: TextSelection | None,
    ) -> AnnotationChange:
        """Move an existing citation to a newly selected span.

        The note id is kept; only the marker position, offsets and
        selected text change.

        Raises:
            AnnotationNotFoundError: No such annotation
            CitationValidationError: No selection, or an invalid one
        """
        annotation = doc.get_annotation(annotation_id)
        if annotation is None:
            raise AnnotationNotFoundError(annotation_id, doc.excerpt_id)
        self._require_selection(doc, selection)

        sync = self.synchronizer(doc)
        removed = sync.remove_marker(content, annotation.note_id)
        placed = sync.insert_marker(
            removed.content,
            selection.text,
            annotation.note_id,
            anchor=selection.start_index,
        )

        annotation.start_index = selection.start_index
        annotation.end_index = selection.end_index
        annotation.selected_text = selection.text
        annotation.updated_at = utc_now()
        doc.touch()

        logger.info(
            "annotation_relocated",
            excerpt_id=doc.excerpt_id,
            annotation_id=annotation_id,
            note_id=annotation.note_id,
        )
        return AnnotationChange(
            content=placed.content,
            annotation=annotation,
            warnings=removed.warnings + placed.warnings,
        )

    # =========================================================================
    # Source deletion (cascade)
    # =========================================================================

    def delete_source(
        self,
        doc: CitationDocument,
        content: str,
        source_id: str,
    ) -> AnnotationChange:
        """Delete a source together with every citation of it.

        Citations are deleted highest note id first, each one renumbering
        and resynchronizing markers, then the source itself is removed.

        Raises:
            SourceNotFoundError: No such source
        """
        if doc.get_source(source_id) is None:
            raise SourceNotFoundError(source_id, doc.excerpt_id)

        citing = sorted(doc.annotations_for_source(source_id), key=lambda a: a.note_id, reverse=True)
        change = AnnotationChange(content=content)
        original_numbers = {a.id: a.note_id for a in doc.annotations}

        for annotation in citing:
            step = self.delete_annotation(doc, change.content, annotation.id)
            change.content = step.content
            change.removed.extend(step.removed)
            change.warnings.extend(step.warnings)

        self.registry.delete_source(doc, source_id)

        change.renumbered = {
            original_numbers[a.id]: a.note_id
            for a in doc.annotations
            if original_numbers[a.id] != a.note_id
        }
        logger.info(
            "source_deleted_with_citations",
            excerpt_id=doc.excerpt_id,
            source_id=source_id,
            removed=len(citing),
        )
        return change

    # =========================================================================
    # Whole-document marker maintenance
    # =========================================================================

    def set_style(
        self,
        doc: CitationDocument,
        content: str,
        style: CitationStyle,
    ) -> AnnotationChange:
        """Change the document style and rewrite every marker to match."""
        doc.style = style
        doc.touch()
        content = self.synchronizer(doc).restyle(content)
        logger.info("style_changed", excerpt_id=doc.excerpt_id, style_id=style.id)
        return AnnotationChange(content=content)

    def verify_markers(self, doc: CitationDocument, content: str) -> MarkerReport:
        """Report missing, orphaned and duplicated markers."""
        report = self.synchronizer(doc).verify(content, doc.note_ids)
        if not report.consistent:
            logger.warning(
                "markers_inconsistent",
                excerpt_id=doc.excerpt_id,
                missing=report.missing,
                orphans=report.orphans,
                duplicates=report.duplicates,
            )
        return report

    def resync_markers(self, doc: CitationDocument, content: str) -> AnnotationChange:
        """Rebuild every marker from the annotations' cited text."""
        synced = self.synchronizer(doc).resync(content, doc.annotations)
        logger.info("markers_resynced", excerpt_id=doc.excerpt_id, annotations=len(doc.annotations))
        return AnnotationChange(content=synced.content, warnings=synced.warnings)

    def check_integrity(self, doc: CitationDocument) -> list[str]:
        """Describe every broken invariant of a document (empty when sound)."""
        problems: list[str] = []
        expected = list(range(1, len(doc.annotations) + 1))
        if doc.note_ids != expected:
            problems.append(f"note ids {doc.note_ids} are not {expected}")
        source_ids = {s.id for s in doc.sources}
        for annotation in doc.annotations:
            if annotation.source_id not in source_ids:
                problems.append(
                    f"annotation {annotation.id} cites missing source {annotation.source_id}"
                )
        return problems

    def _require_selection(self, doc: CitationDocument, selection: TextSelection | None) -> None:
        if selection is None:
            raise CitationValidationError(
                "No text selected",
                field="selection",
                excerpt_id=doc.excerpt_id,
            )
        if not selection.is_valid:
            raise CitationValidationError(
                "Selection is empty or blank",
                field="selection",
                value=selection.text,
                excerpt_id=doc.excerpt_id,
            )


__all__ = [
    "AnnotationChange",
    "AnnotationManager",
]
