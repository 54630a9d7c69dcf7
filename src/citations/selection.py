"""Selection capture.

The engine never talks to an editor directly. It depends on the narrow
SelectionProvider protocol, and each editor backend gets an adapter that
reports the current selection in plain-text coordinates (offsets into
``plain_text(content)``).

Adapters:
- ContentSelectionProvider: selection already in plain-text coordinates
- MarkupRangeSelectionProvider: selection reported as offsets into the HTML
- TextOnlySelectionProvider: only the selected string is known
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from src.citations.markers import plain_text
from src.core.logging import get_logger
from src.schemas.citations import TextSelection


logger = get_logger(__name__)


class EditorRange(BaseModel):
    """A selection range in plain-text coordinates."""

    index: int = Field(..., ge=0)
    length: int = Field(..., ge=0)


@runtime_checkable
class SelectionProvider(Protocol):
    """Protocol every editor adapter implements.

    Methods:
        get_selection: Current range in plain-text coordinates, or None
        get_text: Plain text for a range
    """

    def get_selection(self) -> EditorRange | None:
        ...

    def get_text(self, index: int, length: int) -> str:
        ...


# =============================================================================
# Adapters
# =============================================================================

class ContentSelectionProvider:
    """Adapter for editors that already report plain-text offsets.

    The plain-text projection is computed once, when the adapter is built.
    """

    def __init__(self, content: str, selection: EditorRange | None = None) -> None:
        self._text = plain_text(content)
        self._selection = selection

    @property
    def text(self) -> str:
        return self._text

    def select(self, index: int, length: int) -> None:
        self._selection = EditorRange(index=index, length=length)

    def select_text(self, text: str, occurrence: int = 0) -> bool:
        """Select the n-th occurrence of text. Returns False when absent."""
        start = -1
        for _ in range(occurrence + 1):
            start = self._text.find(text, start + 1)
            if start == -1:
                return False
        self.select(start, len(text))
        return True

    def clear(self) -> None:
        self._selection = None

    def get_selection(self) -> EditorRange | None:
        return self._selection

    def get_text(self, index: int, length: int) -> str:
        return self._text[index:index + length]


class MarkupRangeSelectionProvider(ContentSelectionProvider):
    """Adapter for editors reporting selections as offsets into the HTML.

    Offsets are converted to plain-text coordinates by projecting the
    content prefix before each boundary.
    """

    def __init__(self, content: str, start: int | None = None, end: int | None = None) -> None:
        self._content = content
        super().__init__(content)
        if start is not None and end is not None:
            self.select_markup(start, end)

    def select_markup(self, start: int, end: int) -> None:
        if end < start:
            start, end = end, start
        plain_start = len(plain_text(self._content[:start]))
        plain_end = len(plain_text(self._content[:end]))
        self.select(plain_start, plain_end - plain_start)


class TextOnlySelectionProvider(ContentSelectionProvider):
    """Adapter for selection APIs that only expose the selected string.

    The position is the first occurrence of the trimmed text in the
    plain-text projection.
    """

    def __init__(self, content: str, selected_text: str | None = None) -> None:
        super().__init__(content)
        if selected_text:
            self.set_selected_text(selected_text)

    def set_selected_text(self, selected_text: str) -> None:
        if not self.select_text(selected_text.strip()):
            self.clear()


# =============================================================================
# Capture
# =============================================================================

class SelectionCapture:
    """Obtain the current selection from a provider as a TextSelection.

    A selection is valid only when its length is positive and its text is
    not blank. Surrounding whitespace is trimmed and the offsets moved to
    match.
    """

    def __init__(self, provider: SelectionProvider) -> None:
        self.provider = provider

    def get_current_selection(self) -> TextSelection | None:
        selected = self.provider.get_selection()
        if selected is None or selected.length <= 0:
            return None

        raw = self.provider.get_text(selected.index, selected.length)
        text = raw.strip()
        if not text:
            return None

        start = selected.index + (len(raw) - len(raw.lstrip()))
        selection = TextSelection(
            text=text,
            start_index=start,
            end_index=start + len(text),
            is_valid=True,
        )
        logger.debug("selection_captured", start=selection.start_index, end=selection.end_index)
        return selection


def capture_selection(provider: SelectionProvider) -> TextSelection | None:
    """Convenience wrapper around SelectionCapture."""
    return SelectionCapture(provider).get_current_selection()


__all__ = [
    "ContentSelectionProvider",
    "EditorRange",
    "MarkupRangeSelectionProvider",
    "SelectionCapture",
    "SelectionProvider",
    "TextOnlySelectionProvider",
    "capture_selection",
]
