"""Marker synchronizer.

Keeps the citation marker tokens embedded in an HTML content string
consistent with a document's annotations. A marker carries no identity
of its own, only the note id it renders, so every operation here is a
textual search-and-substitute over the content.

Marker tokens by inline style:
- superscript: <sup><a href="#cite-N" class="citation-link">[N]</a></sup>
- footnotes / endnotes: <sup class="citation-note" data-note="N">N</sup>
- inline: " (Citation N)"

Tokens are self-delimiting, so the token for 1 never matches inside the
token for 12. They are also distinct from author-written markup such as
a plain <sup>2</sup> exponent, which is left alone. Renumbering rewrites
every token in one pass from a complete old -> new map, which means no
rename can clobber another rename target.
"""

from __future__ import annotations

import html
import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from src.core.constants import (
    INLINE_MARKER,
    INLINE_PATTERN,
    SUPERSCRIPT_LINK_MARKER,
    SUPERSCRIPT_LINK_PATTERN,
    SUPERSCRIPT_MARKER,
    SUPERSCRIPT_PATTERN,
)
from src.core.exceptions import MarkerSyncWarning
from src.core.logging import get_logger
from src.schemas.citations import CitationStyle, InlineStyle, TextAnnotation


logger = get_logger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_TRAILING_CLOSE_TAGS_RE = re.compile(r"(?:</[^>]+>\s*)*$")


# =============================================================================
# Marker formats
# =============================================================================

@dataclass(frozen=True, slots=True)
class MarkerFormat:
    """Template and matcher for one marker token shape."""

    template: str
    pattern: re.Pattern[str]

    def render(self, note_id: int) -> str:
        return self.template.format(n=note_id)

    def matches(self, content: str) -> list[re.Match[str]]:
        return list(self.pattern.finditer(content))


_SUPERSCRIPT_LINK = MarkerFormat(SUPERSCRIPT_LINK_MARKER, re.compile(SUPERSCRIPT_LINK_PATTERN))
_SUPERSCRIPT = MarkerFormat(SUPERSCRIPT_MARKER, re.compile(SUPERSCRIPT_PATTERN))
_INLINE = MarkerFormat(INLINE_MARKER, re.compile(INLINE_PATTERN))

MARKER_FORMATS: dict[InlineStyle, MarkerFormat] = {
    InlineStyle.SUPERSCRIPT: _SUPERSCRIPT_LINK,
    InlineStyle.FOOTNOTES: _SUPERSCRIPT,
    InlineStyle.ENDNOTES: _SUPERSCRIPT,
    InlineStyle.INLINE: _INLINE,
}

# Distinct shapes, longest first so the link form is consumed before
# anything could match inside it.
_ALL_FORMATS: tuple[MarkerFormat, ...] = (_SUPERSCRIPT_LINK, _SUPERSCRIPT, _INLINE)


def marker_format(style: CitationStyle | InlineStyle) -> MarkerFormat:
    inline_style = style.inline_style if isinstance(style, CitationStyle) else InlineStyle(style)
    return MARKER_FORMATS[inline_style]


def render_marker(note_id: int, style: CitationStyle | InlineStyle) -> str:
    """Render the marker token for a note id."""
    return marker_format(style).render(note_id)


# =============================================================================
# Text projection
# =============================================================================

# Character references as html.unescape recognizes them.
_CHARREF_RE = re.compile(r"&(#[0-9]+;?|#[xX][0-9a-fA-F]+;?|[^\t\n\f <&#;]{1,32};?)")


def strip_markers(content: str) -> str:
    """Remove every marker token, of any style, from content."""
    for fmt in _ALL_FORMATS:
        content = fmt.pattern.sub("", content)
    return content


def _marker_spans(content: str) -> list[tuple[int, int]]:
    return sorted(m.span() for fmt in _ALL_FORMATS for m in fmt.pattern.finditer(content))


def _markup_spans(content: str) -> list[tuple[int, int]]:
    """Spans of marker tokens and of tags outside them, in content order."""
    markers = _marker_spans(content)
    tags = [
        m.span()
        for m in _TAG_RE.finditer(content)
        if not any(s <= m.start() < e for s, e in markers)
    ]
    return sorted(markers + tags)


@dataclass
class _Projection:
    """Plain text of content plus, per character, the raw index just past it."""

    text: str
    ends: list[int]


def _project(content: str) -> _Projection:
    chars: list[str] = []
    ends: list[int] = []

    def _text_run(start: int, end: int) -> None:
        pos = start
        for ref in _CHARREF_RE.finditer(content, start, end):
            for i in range(pos, ref.start()):
                chars.append(content[i])
                ends.append(i + 1)
            for char in html.unescape(ref.group(0)):
                chars.append(char)
                ends.append(ref.end())
            pos = ref.end()
        for i in range(pos, end):
            chars.append(content[i])
            ends.append(i + 1)

    pos = 0
    for start, end in _markup_spans(content):
        if start < pos:
            continue
        _text_run(pos, start)
        pos = end
    _text_run(pos, len(content))
    return _Projection("".join(chars), ends)


def plain_text(content: str) -> str:
    """Plain-text projection of content.

    Marker tokens and tags are dropped and entities are decoded. All
    selection offsets in the engine are measured against this string.
    """
    return _project(content).text


def _find_all(text: str, needle: str) -> list[int]:
    found: list[int] = []
    start = text.find(needle)
    while start != -1:
        found.append(start)
        start = text.find(needle, start + 1)
    return found


# =============================================================================
# Results
# =============================================================================

@dataclass
class SyncResult:
    """Outcome of a content mutation.

    Attributes:
        content: The rewritten content
        warnings: Non-fatal placement problems, already logged
        position: Index of the inserted marker, when one was inserted
    """

    content: str
    warnings: list[MarkerSyncWarning] = field(default_factory=list)
    position: int | None = None


@dataclass
class MarkerReport:
    """Consistency of content markers against expected note ids."""

    missing: list[int] = field(default_factory=list)
    orphans: list[int] = field(default_factory=list)
    duplicates: list[int] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not (self.missing or self.orphans or self.duplicates)


# =============================================================================
# MarkerSynchronizer
# =============================================================================

class MarkerSynchronizer:
    """Insert, remove and renumber marker tokens in HTML content.

    Args:
        style: Document style; decides the token shape
        anchor_search: Use offset anchors to choose among repeated text
        append_when_missing: Append the marker when the text is not found

    Example:
        >>> sync = MarkerSynchronizer(InlineStyle.FOOTNOTES)
        >>> sync.insert_marker("<p>the war began</p>", "the war began", 1).content
        '<p>the war began<sup class="citation-note" data-note="1">1</sup></p>'
    """

    def __init__(
        self,
        style: CitationStyle | InlineStyle,
        *,
        anchor_search: bool = True,
        append_when_missing: bool = True,
    ) -> None:
        self.format = marker_format(style)
        self.anchor_search = anchor_search
        self.append_when_missing = append_when_missing

    def render(self, note_id: int) -> str:
        return self.format.render(note_id)

    def note_ids(self, content: str) -> list[int]:
        """Note ids of the markers in content, in reading order."""
        return [int(m.group("n")) for m in self.format.matches(content)]

    def count(self, content: str, note_id: int) -> int:
        return sum(1 for n in self.note_ids(content) if n == note_id)

    # -------------------------------------------------------------------------
    # Insert
    # -------------------------------------------------------------------------

    def insert_marker(
        self,
        content: str,
        after_text: str,
        note_id: int,
        *,
        anchor: int | None = None,
    ) -> SyncResult:
        """Insert the marker for note_id right after after_text.

        after_text is matched against the plain-text projection, so it may
        span tags, entities and markers of other citations. The marker goes
        after the last raw character of the match and after any markers
        already sitting there.

        The first occurrence wins unless an anchor (plain-text offset of
        the original selection) is given and the text repeats, in which
        case the occurrence nearest the anchor is used. Repeated text and
        missing text both produce a MarkerSyncWarning.
        """
        warnings: list[MarkerSyncWarning] = []
        projection = _project(content)
        positions = _find_all(projection.text, after_text) if after_text else []

        marker = self.render(note_id)

        if not positions:
            warnings.append(self._warn(
                f"Cited text not found in content for note {note_id}",
                MarkerSyncWarning.NOT_FOUND,
                note_id,
                after_text,
            ))
            if not self.append_when_missing:
                return SyncResult(content, warnings)
            tail = _TRAILING_CLOSE_TAGS_RE.search(content)
            index = tail.start() if tail else len(content)
            return SyncResult(content[:index] + marker + content[index:], warnings, index)

        start = positions[0]
        if len(positions) > 1:
            warnings.append(self._warn(
                f"Cited text occurs {len(positions)} times; note {note_id} placed by "
                + ("nearest anchor" if anchor is not None and self.anchor_search else "first occurrence"),
                MarkerSyncWarning.AMBIGUOUS,
                note_id,
                after_text,
            ))
            if anchor is not None and self.anchor_search:
                start = min(positions, key=lambda p: abs(p - anchor))

        index = projection.ends[start + len(after_text) - 1]
        for span_start, span_end in _marker_spans(content):
            if span_start == index:
                index = span_end
        return SyncResult(content[:index] + marker + content[index:], warnings, index)

    # -------------------------------------------------------------------------
    # Remove / renumber
    # -------------------------------------------------------------------------

    def remove_marker(self, content: str, note_id: int) -> SyncResult:
        """Remove every token rendering note_id."""
        warnings: list[MarkerSyncWarning] = []
        removed = 0

        def _drop(match: re.Match[str]) -> str:
            nonlocal removed
            if int(match.group("n")) == note_id:
                removed += 1
                return ""
            return match.group(0)

        content = self.format.pattern.sub(_drop, content)

        if removed == 0:
            warnings.append(self._warn(
                f"No marker found for note {note_id}",
                MarkerSyncWarning.MISSING_MARKER,
                note_id,
            ))
        elif removed > 1:
            warnings.append(self._warn(
                f"Removed {removed} markers for note {note_id}",
                MarkerSyncWarning.DUPLICATE_MARKER,
                note_id,
            ))
        return SyncResult(content, warnings)

    def renumber_marker(self, content: str, old_note_id: int, new_note_id: int) -> SyncResult:
        """Rewrite the token for old_note_id as new_note_id."""
        return self.renumber_markers(content, {old_note_id: new_note_id})

    def renumber_markers(self, content: str, mapping: dict[int, int]) -> SyncResult:
        """Rewrite all tokens named in mapping in a single pass.

        Every target is collected before anything is rewritten, so a swap
        such as {1: 2, 2: 1} is applied correctly.
        """
        changes = {old: new for old, new in mapping.items() if old != new}
        if not changes:
            return SyncResult(content)

        seen: Counter[int] = Counter()

        def _rewrite(match: re.Match[str]) -> str:
            old = int(match.group("n"))
            if old not in changes:
                return match.group(0)
            seen[old] += 1
            return self.render(changes[old])

        content = self.format.pattern.sub(_rewrite, content)

        warnings = [
            self._warn(
                f"No marker found for note {old} while renumbering to {new}",
                MarkerSyncWarning.MISSING_MARKER,
                old,
            )
            for old, new in sorted(changes.items())
            if seen[old] == 0
        ]
        return SyncResult(content, warnings)

    # -------------------------------------------------------------------------
    # Whole-document operations
    # -------------------------------------------------------------------------

    def restyle(self, content: str) -> str:
        """Rewrite markers of every shape into this synchronizer's shape."""
        for fmt in _ALL_FORMATS:
            if fmt is self.format:
                continue
            content = fmt.pattern.sub(lambda m: self.render(int(m.group("n"))), content)
        return content

    def verify(self, content: str, expected: Iterable[int]) -> MarkerReport:
        """Compare the markers in content against the expected note ids."""
        counts = Counter(self.note_ids(content))
        wanted = set(expected)
        return MarkerReport(
            missing=sorted(n for n in wanted if counts[n] == 0),
            orphans=sorted(n for n in counts if n not in wanted),
            duplicates=sorted(n for n, c in counts.items() if c > 1),
        )

    def resync(self, content: str, annotations: Iterable[TextAnnotation]) -> SyncResult:
        """Strip all markers, then place one per annotation in note id order."""
        content = strip_markers(content)
        warnings: list[MarkerSyncWarning] = []
        for annotation in sorted(annotations, key=lambda a: a.note_id):
            result = self.insert_marker(
                content,
                annotation.selected_text,
                annotation.note_id,
                anchor=annotation.start_index,
            )
            content = result.content
            warnings.extend(result.warnings)
        return SyncResult(content, warnings)

    def _warn(
        self,
        message: str,
        kind: str,
        note_id: int | None,
        text: str | None = None,
    ) -> MarkerSyncWarning:
        logger.warning("marker_sync_warning", kind=kind, note_id=note_id, text=text, detail=message)
        return MarkerSyncWarning(message, kind=kind, note_id=note_id, text=text)


__all__ = [
    "MARKER_FORMATS",
    "MarkerFormat",
    "MarkerReport",
    "MarkerSynchronizer",
    "SyncResult",
    "marker_format",
    "plain_text",
    "render_marker",
    "strip_markers",
]
