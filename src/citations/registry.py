"""Source registry for a citation document.

Owns the bibliographic entries of a CitationDocument. The registry has
no knowledge of annotations beyond refusing to delete a source that is
still cited; cascading deletes live in the AnnotationManager.
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import ValidationError

from src.core.constants import SOURCE_ID_PREFIX
from src.core.exceptions import (
    CitationValidationError,
    SourceInUseError,
    SourceNotFoundError,
)
from src.core.logging import get_logger
from src.schemas.citations import (
    CitationDocument,
    Source,
    SourceInput,
    SourcePatch,
    utc_now,
)


logger = get_logger(__name__)


def _validation_error(exc: ValidationError, excerpt_id: str) -> CitationValidationError:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())) or "source"
    return CitationValidationError(
        f"Invalid source: {first.get('msg', 'validation failed')}",
        field=field,
        value=first.get("input"),
        errors=[{"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]} for e in errors],
        excerpt_id=excerpt_id,
    )


class SourceRegistry:
    """Create, read, update and delete sources of a document.

    Example:
        >>> registry = SourceRegistry()
        >>> source = registry.add_source(doc, {"title": "T", "author": "Smith, J.", "year": 2020})
        >>> registry.get_source(doc, source.id) is source
        True
    """

    def add_source(
        self,
        doc: CitationDocument,
        data: SourceInput | dict[str, Any],
    ) -> Source:
        """Add a source, generating its id and creation timestamp.

        Args:
            doc: Document to add to
            data: Source fields (model or mapping, camelCase or snake_case keys)

        Returns:
            The created Source

        Raises:
            CitationValidationError: Required fields missing or invalid
        """
        try:
            payload = data if isinstance(data, SourceInput) else SourceInput.model_validate(data)
        except ValidationError as exc:
            raise _validation_error(exc, doc.excerpt_id) from exc

        source = Source(
            id=f"{SOURCE_ID_PREFIX}-{uuid.uuid4().hex}",
            created_at=utc_now(),
            **payload.model_dump(),
        )
        doc.sources.append(source)
        doc.touch()

        logger.info("source_added", excerpt_id=doc.excerpt_id, source_id=source.id)
        return source

    def update_source(
        self,
        doc: CitationDocument,
        source_id: str,
        patch: SourcePatch | dict[str, Any],
    ) -> Source:
        """Apply a partial update to a source.

        The id and created_at are never changed. The whole record is
        re-validated before it replaces the old one.

        Raises:
            SourceNotFoundError: No such source
            CitationValidationError: The patched record is invalid
        """
        index = self._index_of(doc, source_id)
        current = doc.sources[index]

        try:
            changes = patch if isinstance(patch, SourcePatch) else SourcePatch.model_validate(patch)
            merged = {**current.model_dump(), **changes.model_dump(exclude_unset=True)}
            merged["id"] = current.id
            merged["created_at"] = current.created_at
            updated = Source.model_validate(merged)
        except ValidationError as exc:
            raise _validation_error(exc, doc.excerpt_id) from exc

        doc.sources[index] = updated
        doc.touch()

        logger.info("source_updated", excerpt_id=doc.excerpt_id, source_id=source_id)
        return updated

    def delete_source(self, doc: CitationDocument, source_id: str) -> Source:
        """Delete an uncited source.

        Raises:
            SourceNotFoundError: No such source
            SourceInUseError: Annotations still reference the source
        """
        index = self._index_of(doc, source_id)

        citing = doc.annotations_for_source(source_id)
        if citing:
            logger.error(
                "source_in_use",
                excerpt_id=doc.excerpt_id,
                source_id=source_id,
                annotation_ids=[a.id for a in citing],
            )
            raise SourceInUseError(source_id, [a.id for a in citing], doc.excerpt_id)

        removed = doc.sources.pop(index)
        doc.touch()

        logger.info("source_deleted", excerpt_id=doc.excerpt_id, source_id=source_id)
        return removed

    def list_sources(self, doc: CitationDocument) -> list[Source]:
        """Return the document's sources in insertion order."""
        return list(doc.sources)

    def get_source(self, doc: CitationDocument, source_id: str) -> Source | None:
        return doc.get_source(source_id)

    def _index_of(self, doc: CitationDocument, source_id: str) -> int:
        for index, source in enumerate(doc.sources):
            if source.id == source_id:
                return index
        raise SourceNotFoundError(source_id, doc.excerpt_id)


__all__ = [
    "SourceRegistry",
]
