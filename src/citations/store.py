"""Per-excerpt citation document store.

Holds one CitationDocument per excerpt in memory. Documents are created
lazily the first time an excerpt is addressed and only removed by an
explicit clear_excerpt(). Nothing is written to durable storage as a side
effect of a mutation; callers persist explicitly with save() once an
operation has completed.

Creating a store configures logging for the process, and the current
excerpt id is bound into the log context while it is current.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote

from src.citations.formatter import get_style
from src.core.config import Settings, get_settings
from src.core.logging import bind_current_excerpt, configure_logging, get_logger
from src.schemas.citations import CitationDocument, CitationStyle


logger = get_logger(__name__)


# =============================================================================
# Persistence boundary
# =============================================================================

@runtime_checkable
class CitationPersistence(Protocol):
    """Storage backend for serialized documents and their content.

    Values are opaque JSON-serializable data keyed by excerpt id.
    """

    def save_document(self, excerpt_id: str, document: dict[str, Any], content: str) -> None:
        ...

    def load_document(self, excerpt_id: str) -> tuple[dict[str, Any], str] | None:
        ...


class JsonFilePersistence:
    """Store each excerpt as ``<directory>/<excerpt_id>.json``.

    The id is percent-encoded, so distinct ids never share a file and no
    id can name a path outside the directory.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, excerpt_id: str) -> Path:
        return self.directory / f"{quote(excerpt_id, safe='')}.json"

    def save_document(self, excerpt_id: str, document: dict[str, Any], content: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = {"document": document, "content": content}
        self._path(excerpt_id).write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")

    def load_document(self, excerpt_id: str) -> tuple[dict[str, Any], str] | None:
        path = self._path(excerpt_id)
        if not path.exists():
            return None
        payload = json.loads(path.read_text(encoding="utf-8"))
        return payload["document"], payload.get("content", "")


# =============================================================================
# CitationStore
# =============================================================================

class CitationStore:
    """In-memory map of excerpt id -> CitationDocument.

    Callers must serialize operations against one document; the store
    does no locking.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        configure_logging(self.settings)
        self._documents: dict[str, CitationDocument] = {}
        self.current_excerpt_id: str | None = None

    def default_style(self) -> CitationStyle:
        try:
            return get_style(self.settings.default_style_id)
        except KeyError:
            logger.warning("unknown_default_style", style_id=self.settings.default_style_id)
            return get_style("apa")

    def get_document(self, excerpt_id: str) -> CitationDocument:
        """Return the excerpt's document, creating it on first access."""
        doc = self._documents.get(excerpt_id)
        if doc is None:
            doc = CitationDocument(excerpt_id=excerpt_id, style=self.default_style())
            self._documents[excerpt_id] = doc
            logger.debug("document_created", excerpt_id=excerpt_id)
        return doc

    def has_document(self, excerpt_id: str) -> bool:
        return excerpt_id in self._documents

    def set_current_excerpt(self, excerpt_id: str) -> CitationDocument:
        self.current_excerpt_id = excerpt_id
        bind_current_excerpt(excerpt_id)
        return self.get_document(excerpt_id)

    def clear_excerpt(self, excerpt_id: str) -> bool:
        """Remove a document. Returns False when there was none."""
        removed = self._documents.pop(excerpt_id, None)
        if self.current_excerpt_id == excerpt_id:
            self.current_excerpt_id = None
            bind_current_excerpt(None)
        if removed is not None:
            logger.info("document_cleared", excerpt_id=excerpt_id)
        return removed is not None

    def transfer_document(self, from_id: str, to_id: str) -> CitationDocument | None:
        """Re-key a document, e.g. from a temporary id to a saved excerpt id.

        Any document already stored under to_id is replaced.
        """
        if from_id == to_id or from_id not in self._documents:
            return None
        doc = self._documents.pop(from_id)
        doc.excerpt_id = to_id
        for annotation in doc.annotations:
            annotation.excerpt_id = to_id
        self._documents[to_id] = doc
        if self.current_excerpt_id == from_id:
            self.current_excerpt_id = to_id
            bind_current_excerpt(to_id)
        logger.info("document_transferred", from_id=from_id, to_id=to_id)
        return doc

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def dump(self) -> dict[str, Any]:
        """JSON-serializable snapshot of every document."""
        return {
            excerpt_id: doc.model_dump(mode="json", by_alias=True)
            for excerpt_id, doc in self._documents.items()
        }

    def load(self, data: dict[str, Any]) -> None:
        """Replace all documents with a snapshot produced by dump()."""
        self._documents = {
            excerpt_id: CitationDocument.model_validate(raw)
            for excerpt_id, raw in data.items()
        }

    def save(self, excerpt_id: str, content: str, persistence: CitationPersistence) -> None:
        """Persist one document with its content."""
        doc = self.get_document(excerpt_id)
        persistence.save_document(excerpt_id, doc.model_dump(mode="json", by_alias=True), content)
        logger.info(
            "document_saved",
            excerpt_id=excerpt_id,
            sources=len(doc.sources),
            annotations=len(doc.annotations),
        )

    def restore(self, excerpt_id: str, persistence: CitationPersistence) -> str | None:
        """Load one document from persistence; returns its content."""
        loaded = persistence.load_document(excerpt_id)
        if loaded is None:
            return None
        raw, content = loaded
        self._documents[excerpt_id] = CitationDocument.model_validate(raw)
        logger.info("document_restored", excerpt_id=excerpt_id)
        return content


__all__ = [
    "CitationPersistence",
    "CitationStore",
    "JsonFilePersistence",
]
