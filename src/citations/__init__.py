"""Citation & Annotation Engine.

This package keeps numbered citation markers in a rich-text document
consistent with the document's sources and citations:
- SourceRegistry for bibliographic entries
- SelectionCapture and editor adapters for the current text selection
- AnnotationManager for create/delete/reorder with contiguous note ids
- MarkerSynchronizer for marker tokens inside the HTML content
- CitationFormatter for inline forms and bibliography entries
- CitationStore for per-excerpt documents and explicit persistence
"""

from src.citations.formatter import (
    CitationFormatter,
    document_bibliography,
    get_available_styles,
    get_style,
)
from src.citations.manager import AnnotationChange, AnnotationManager
from src.citations.markers import MarkerSynchronizer, plain_text, strip_markers
from src.citations.registry import SourceRegistry
from src.citations.selection import (
    ContentSelectionProvider,
    EditorRange,
    MarkupRangeSelectionProvider,
    SelectionCapture,
    SelectionProvider,
    TextOnlySelectionProvider,
)
from src.citations.store import CitationPersistence, CitationStore, JsonFilePersistence
from src.citations.workflow import CitationWorkflow


__all__: list[str] = [
    "AnnotationChange",
    "AnnotationManager",
    "CitationFormatter",
    "CitationPersistence",
    "CitationStore",
    "CitationWorkflow",
    "ContentSelectionProvider",
    "EditorRange",
    "JsonFilePersistence",
    "MarkerSynchronizer",
    "MarkupRangeSelectionProvider",
    "SelectionCapture",
    "SelectionProvider",
    "SourceRegistry",
    "TextOnlySelectionProvider",
    "document_bibliography",
    "get_available_styles",
    "get_style",
    "plain_text",
    "strip_markers",
]
