"""Citation document schemas.

Models:
- Source: Bibliographic record owned by a CitationDocument
- SourceInput / SourcePatch: Payloads for creating and updating sources
- TextAnnotation: Binding between a text span and a Source, numbered by note_id
- CitationStyle: Immutable style selection (bibliography format + inline style)
- TextSelection: Transient captured selection over the plain-text projection
- FormattedCitation: Inline and full rendering of one source
- CitationDocument: Per-excerpt aggregate of sources, annotations and style

Serialized documents use camelCase keys (noteId, startIndex, sourceId, ...)
so persisted snapshots stay compatible with the editor front end.

Anti-Pattern Compliance:
- AP-1.5: No mutable default arguments (uses Field(default_factory=list))
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


_CAMEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
)


# =============================================================================
# Enums
# =============================================================================

class SourceType(str, Enum):
    """Kinds of bibliographic sources."""

    BOOK = "book"
    JOURNAL = "journal"
    WEBSITE = "website"
    NEWSPAPER = "newspaper"
    MAGAZINE = "magazine"
    THESIS = "thesis"
    CONFERENCE = "conference"
    OTHER = "other"


class CitationFormat(str, Enum):
    """Bibliography style families."""

    APA = "apa"
    MLA = "mla"
    CHICAGO = "chicago"
    HARVARD = "harvard"
    IEEE = "ieee"
    VANCOUVER = "vancouver"


class InlineStyle(str, Enum):
    """How a citation is rendered in running text."""

    INLINE = "inline"
    FOOTNOTES = "footnotes"
    ENDNOTES = "endnotes"
    SUPERSCRIPT = "superscript"


# =============================================================================
# Sources
# =============================================================================

class SourceFields(BaseModel):
    """Bibliographic fields shared by sources and source input.

    Attributes:
        type: Kind of source
        title: Title of the work
        author: Free-text author, "Last, First" convention
        year: Publication year
        publication: Journal, newspaper or site name
        volume: Volume number
        issue: Issue number
        pages: Page range, e.g. '12-45'
        url: Web address
        doi: Digital object identifier
        publisher: Publisher name
        location: Place of publication
        isbn: ISBN
        access_date: Date a web source was accessed (ISO format)
    """

    model_config = _CAMEL_CONFIG

    type: SourceType = Field(default=SourceType.BOOK, description="Kind of source")
    title: str = Field(..., description="Title of the work")
    author: str = Field(..., description="Author in 'Last, First' format")
    year: int = Field(..., ge=0, description="Publication year")

    publication: str | None = Field(default=None, description="Containing publication")
    volume: str | None = Field(default=None, description="Volume")
    issue: str | None = Field(default=None, description="Issue")
    pages: str | None = Field(default=None, description="Page range")
    url: str | None = Field(default=None, description="URL")
    doi: str | None = Field(default=None, description="DOI")
    publisher: str | None = Field(default=None, description="Publisher")
    location: str | None = Field(default=None, description="Place of publication")
    isbn: str | None = Field(default=None, description="ISBN")
    access_date: str | None = Field(default=None, description="Access date (ISO)")

    @field_validator("title", "author")
    @classmethod
    def required_text(cls, v: str) -> str:
        """Validate required text fields are not blank."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class SourceInput(SourceFields):
    """Payload for adding a source; id and timestamps are generated."""


class SourcePatch(BaseModel):
    """Partial update for a source. Unset fields are left untouched."""

    model_config = _CAMEL_CONFIG

    type: SourceType | None = None
    title: str | None = None
    author: str | None = None
    year: int | None = None
    publication: str | None = None
    volume: str | None = None
    issue: str | None = None
    pages: str | None = None
    url: str | None = None
    doi: str | None = None
    publisher: str | None = None
    location: str | None = None
    isbn: str | None = None
    access_date: str | None = None


class Source(SourceFields):
    """A bibliographic record in a CitationDocument.

    Identity (id, created_at) is fixed at creation; all other fields
    may be updated.

    Example:
        >>> source = Source(
        ...     id="source-1",
        ...     type="book",
        ...     title="A History of the War",
        ...     author="Smith, J.",
        ...     year=2020,
        ... )
    """

    id: str = Field(..., description="Unique source id")
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Annotations
# =============================================================================

class TextAnnotation(BaseModel):
    """A citation: a captured text span bound to a Source.

    start_index/end_index are offsets into the plain-text projection at
    creation time. They are historical and used only as an anchor hint
    when the cited text repeats; markers are located by note_id.
    """

    model_config = _CAMEL_CONFIG

    id: str
    excerpt_id: str
    source_id: str
    start_index: int = Field(..., ge=0)
    end_index: int = Field(..., ge=0)
    selected_text: str
    note_id: int = Field(..., gt=0, description="Contiguous 1-based display number")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TextSelection(BaseModel):
    """A captured selection over the plain-text projection of content."""

    model_config = _CAMEL_CONFIG

    text: str
    start_index: int = Field(..., ge=0)
    end_index: int = Field(..., ge=0)
    is_valid: bool = True

    @property
    def length(self) -> int:
        return self.end_index - self.start_index

    @model_validator(mode="after")
    def check_validity(self) -> TextSelection:
        """A selection is valid only when it spans text that is not blank."""
        if self.length <= 0 or not self.text.strip():
            self.is_valid = False
        return self


# =============================================================================
# Styles and formatted output
# =============================================================================

class CitationStyle(BaseModel):
    """Citation style selected per document. Immutable."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    format: CitationFormat
    inline_style: InlineStyle


class FormattedCitation(BaseModel):
    """Inline and full rendering of one source under one style."""

    model_config = _CAMEL_CONFIG

    id: str
    source_id: str
    inline: str
    full: str
    style: CitationStyle


# =============================================================================
# Aggregate root
# =============================================================================

class CitationDocument(BaseModel):
    """Sources, annotations and style for one excerpt.

    Annotations are kept in citation-list order; note ids follow that
    order as 1..N.
    """

    model_config = _CAMEL_CONFIG

    excerpt_id: str
    sources: list[Source] = Field(default_factory=list)
    annotations: list[TextAnnotation] = Field(default_factory=list)
    style: CitationStyle
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def get_source(self, source_id: str) -> Source | None:
        for source in self.sources:
            if source.id == source_id:
                return source
        return None

    def get_annotation(self, annotation_id: str) -> TextAnnotation | None:
        for annotation in self.annotations:
            if annotation.id == annotation_id:
                return annotation
        return None

    def annotations_for_source(self, source_id: str) -> list[TextAnnotation]:
        return [a for a in self.annotations if a.source_id == source_id]

    @property
    def note_ids(self) -> list[int]:
        """Note ids in citation-list order."""
        return [a.note_id for a in self.annotations]

    def max_note_id(self) -> int:
        return max(self.note_ids, default=0)

    def cited_sources(self) -> list[Source]:
        """Sources cited by at least one annotation, by first citing note id."""
        first_note: dict[str, int] = {}
        for annotation in self.annotations:
            current = first_note.get(annotation.source_id)
            if current is None or annotation.note_id < current:
                first_note[annotation.source_id] = annotation.note_id
        cited = [s for s in self.sources if s.id in first_note]
        return sorted(cited, key=lambda s: first_note[s.id])

    def touch(self) -> None:
        self.updated_at = utc_now()


__all__ = [
    "CitationDocument",
    "CitationFormat",
    "CitationStyle",
    "FormattedCitation",
    "InlineStyle",
    "Source",
    "SourceFields",
    "SourceInput",
    "SourcePatch",
    "SourceType",
    "TextAnnotation",
    "TextSelection",
    "utc_now",
]
