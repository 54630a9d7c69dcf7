"""Custom exceptions for the citation engine.

All exceptions are namespaced to avoid shadowing Python builtins and
pydantic's own ValidationError.

Taxonomy:
- CitationValidationError: recoverable, the operation aborts with no mutation
- ReferentialError: caller misuse (unknown source/annotation ids)
- MarkerSyncWarning: non-fatal marker placement problems, returned not raised
"""

from typing import Any


class CitationError(Exception):
    """Base exception for all citation engine errors.

    All engine exceptions inherit from this class to enable
    catching any citation error with a single except clause.
    """

    def __init__(self, message: str, excerpt_id: str | None = None) -> None:
        """Initialize citation error.

        Args:
            message: Error description
            excerpt_id: Document the failing operation addressed
        """
        self.excerpt_id = excerpt_id
        super().__init__(message)


class CitationValidationError(CitationError):
    """Raised when operation input is invalid.

    Covers empty or invalid selections, missing required source
    fields and out-of-range list indices.
    """

    def __init__(
        self,
        message: str,
        field: str,
        value: Any | None = None,
        errors: list[dict[str, Any]] | None = None,
        excerpt_id: str | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error description
            field: The field that failed validation
            value: The invalid value
            errors: Validation errors for multiple fields
            excerpt_id: Document the failing operation addressed
        """
        self.field = field
        self.value = value
        self.errors = errors
        super().__init__(message, excerpt_id)


class ReferentialError(CitationError):
    """Raised when an id does not resolve within a document."""


class InvalidSourceError(ReferentialError):
    """Raised when a citation names a source missing from the document."""

    def __init__(self, source_id: str, excerpt_id: str | None = None) -> None:
        self.source_id = source_id
        super().__init__(f"Source '{source_id}' does not exist in this document", excerpt_id)


class SourceNotFoundError(ReferentialError):
    """Raised when updating or deleting an unknown source."""

    def __init__(self, source_id: str, excerpt_id: str | None = None) -> None:
        self.source_id = source_id
        super().__init__(f"Source '{source_id}' not found", excerpt_id)


class AnnotationNotFoundError(ReferentialError):
    """Raised when addressing an unknown annotation."""

    def __init__(self, annotation_id: str, excerpt_id: str | None = None) -> None:
        self.annotation_id = annotation_id
        super().__init__(f"Annotation '{annotation_id}' not found", excerpt_id)


class SourceInUseError(ReferentialError):
    """Raised when deleting a source that annotations still reference.

    The annotation manager cascades before deleting, so this is only
    seen by callers going to the registry directly.
    """

    def __init__(
        self,
        source_id: str,
        annotation_ids: list[str],
        excerpt_id: str | None = None,
    ) -> None:
        self.source_id = source_id
        self.annotation_ids = annotation_ids
        super().__init__(
            f"Source '{source_id}' is cited by {len(annotation_ids)} annotation(s)",
            excerpt_id,
        )


class MarkerSyncWarning(UserWarning):
    """Non-fatal marker placement problem.

    Kinds:
        not_found: cited text was not located in content
        ambiguous: cited text occurs more than once
        missing_marker: no marker token for a note id that should have one
        duplicate_marker: more than one token for the same note id
    """

    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    MISSING_MARKER = "missing_marker"
    DUPLICATE_MARKER = "duplicate_marker"

    def __init__(
        self,
        message: str,
        kind: str,
        note_id: int | None = None,
        text: str | None = None,
    ) -> None:
        self.kind = kind
        self.note_id = note_id
        self.text = text
        super().__init__(message)
