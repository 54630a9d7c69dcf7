"""Citation formatter.

Pure functions of (sources, style): turns sources into inline markers and
full bibliography entries. Nothing here reads or changes a document.

Full-entry shapes (journal article / book):
- APA:       Smith, J. (2020). Title. Journal, 4(2), 1-9. / Smith, J. (2020). Title. Publisher.
- Harvard:   Smith, J. (2020) 'Title', Journal, 4(2), pp. 1-9. / Smith, J. (2020) Title. Place: Publisher.
- MLA:       Smith, John. "Title." Journal, vol. 4, no. 2, 2020, pp. 1-9. / Smith, John. Title. Publisher, 2020.
- Chicago:   Smith, John. "Title." Journal 4, no. 2 (2020): 1-9. / Smith, John. Title. Place: Publisher, 2020.
- IEEE:      J. Smith, "Title," Journal, vol. 4, no. 2, pp. 1-9, 2020. / J. Smith, Title. Place: Publisher, 2020.
- Vancouver: Smith J. Title. Journal. 2020;4(2):1-9. / Smith J. Title. Place: Publisher; 2020.

A source that cannot be formatted falls back to "{author} ({year}). {title}."
rather than raising.

Only cited sources belong in a document's bibliography. The formatter is
unfiltered; document_bibliography() applies the filter.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import Any

from src.core.constants import CSL_TYPES, FORMATTED_ID_PREFIX
from src.core.logging import get_logger
from src.schemas.citations import (
    CitationDocument,
    CitationFormat,
    CitationStyle,
    FormattedCitation,
    InlineStyle,
    Source,
    SourceType,
)


logger = get_logger(__name__)


# =============================================================================
# Styles
# =============================================================================

AVAILABLE_STYLES: tuple[CitationStyle, ...] = (
    CitationStyle(id="apa", name="APA Style", format=CitationFormat.APA, inline_style=InlineStyle.INLINE),
    CitationStyle(id="mla", name="MLA Style", format=CitationFormat.MLA, inline_style=InlineStyle.INLINE),
    CitationStyle(
        id="chicago", name="Chicago Style", format=CitationFormat.CHICAGO, inline_style=InlineStyle.FOOTNOTES
    ),
    CitationStyle(
        id="harvard", name="Harvard Style", format=CitationFormat.HARVARD, inline_style=InlineStyle.INLINE
    ),
    CitationStyle(id="ieee", name="IEEE Style", format=CitationFormat.IEEE, inline_style=InlineStyle.SUPERSCRIPT),
    CitationStyle(
        id="vancouver",
        name="Vancouver Style",
        format=CitationFormat.VANCOUVER,
        inline_style=InlineStyle.SUPERSCRIPT,
    ),
)


def get_available_styles() -> list[CitationStyle]:
    return list(AVAILABLE_STYLES)


def get_style(style_id: str) -> CitationStyle:
    """Look up a predefined style by id.

    Raises:
        KeyError: Unknown style id
    """
    for style in AVAILABLE_STYLES:
        if style.id == style_id:
            return style
    raise KeyError(style_id)


# =============================================================================
# Authors
# =============================================================================

def parse_author(author: str) -> list[dict[str, str]]:
    """Split a free-text author field into CSL name objects.

    Multiple authors are separated by ';'. Each "Last, First" becomes
    {family, given}; anything else is kept as {literal}.
    """
    names: list[dict[str, str]] = []
    for part in author.split(";"):
        part = part.strip()
        if not part:
            continue
        pieces = [p.strip() for p in part.split(",", 1)]
        if len(pieces) == 2 and pieces[0] and pieces[1]:
            names.append({"family": pieces[0], "given": pieces[1]})
        else:
            names.append({"literal": part})
    return names


def _initials(given: str) -> str:
    letters = [w[0].upper() for w in re.split(r"[\s.\-]+", given) if w]
    return " ".join(f"{letter}." for letter in letters)


def _family(name: dict[str, str]) -> str:
    return name.get("family") or name.get("literal", "")


def _join_names(names: list[str], last_sep: str) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + last_sep + names[-1]


def _family_initials(source: Source) -> str:
    names = [
        f"{n['family']}, {_initials(n['given'])}" if "family" in n else n["literal"]
        for n in parse_author(source.author)
    ]
    return _join_names(names, ", & " if len(names) > 2 else " & ")


def _as_written(source: Source) -> str:
    names = [
        f"{n['family']}, {n['given']}" if "family" in n else n["literal"]
        for n in parse_author(source.author)
    ]
    return _join_names(names, ", and " if len(names) > 2 else " and ")


def _initials_family(source: Source) -> str:
    names = [
        f"{_initials(n['given'])} {n['family']}" if "family" in n else n["literal"]
        for n in parse_author(source.author)
    ]
    return _join_names(names, ", and " if len(names) > 2 else " and ")


def _vancouver_names(source: Source) -> str:
    names = [
        f"{n['family']} {_initials(n['given']).replace('.', '').replace(' ', '')}"
        if "family" in n else n["literal"]
        for n in parse_author(source.author)
    ]
    return ", ".join(names)


# =============================================================================
# Fragments
# =============================================================================

def _sentence(text: str) -> str:
    text = text.strip()
    if text and text[-1] not in ".?!":
        text += "."
    return text


def _join(*parts: str | None, sep: str = " ") -> str:
    return sep.join(p for p in parts if p)


def _volume_issue(source: Source) -> str:
    if source.volume and source.issue:
        return f"{source.volume}({source.issue})"
    return source.volume or (f"({source.issue})" if source.issue else "")


def _place_publisher(source: Source) -> str:
    publisher = source.publisher or (source.publication if source.type == SourceType.BOOK else None)
    if source.location and publisher:
        return f"{source.location}: {publisher}"
    return publisher or source.location or ""


def _link(source: Source) -> str:
    if source.doi:
        return f"https://doi.org/{source.doi}"
    return source.url or ""


def _is_periodical(source: Source) -> bool:
    return source.type in (
        SourceType.JOURNAL,
        SourceType.NEWSPAPER,
        SourceType.MAGAZINE,
        SourceType.CONFERENCE,
        SourceType.WEBSITE,
    )


# =============================================================================
# Full entries per style
# =============================================================================

def _format_apa(source: Source) -> str:
    head = f"{_family_initials(source)} ({source.year})."
    if _is_periodical(source):
        container = _join(source.publication, _volume_issue(source), source.pages, sep=", ")
        body = _join(_sentence(source.title), _sentence(container) if container else None)
    else:
        body = _join(_sentence(source.title), _sentence(_place_publisher(source)) or None)
    return _join(head, body, _link(source))


def _format_harvard(source: Source) -> str:
    head = f"{_family_initials(source)} ({source.year})"
    if _is_periodical(source):
        pages = f"pp. {source.pages}" if source.pages else None
        entry = _join(f"'{source.title}'", source.publication, _volume_issue(source), pages, sep=", ")
        entry = _join(head, _sentence(entry))
    else:
        entry = _join(head, _sentence(source.title), _sentence(_place_publisher(source)) or None)
    if source.url:
        accessed = f" (Accessed: {source.access_date})" if source.access_date else ""
        entry = _join(entry, f"Available at: {source.url}{accessed}.")
    return entry


def _format_mla(source: Source) -> str:
    head = _sentence(_as_written(source))
    if _is_periodical(source):
        vol = f"vol. {source.volume}" if source.volume else None
        no = f"no. {source.issue}" if source.issue else None
        pages = f"pp. {source.pages}" if source.pages else None
        container = _join(source.publication, vol, no, str(source.year), pages, sep=", ")
        return _join(head, f'"{_sentence(source.title)}"', _sentence(container), source.url)
    publisher = source.publisher or source.publication
    return _join(head, _sentence(source.title), _sentence(_join(publisher, str(source.year), sep=", ")))


def _format_chicago(source: Source) -> str:
    head = _sentence(_as_written(source))
    if _is_periodical(source):
        container = _join(source.publication, source.volume)
        if source.issue:
            container = _join(container, f"no. {source.issue}", sep=", ")
        container = _join(container, f"({source.year})")
        if source.pages:
            container = f"{container}: {source.pages}"
        return _join(head, f'"{_sentence(source.title)}"', _sentence(container), _link(source))
    publication = _join(_place_publisher(source), str(source.year), sep=", ")
    return _join(head, _sentence(source.title), _sentence(publication))


def _format_ieee(source: Source) -> str:
    authors = _initials_family(source)
    if _is_periodical(source):
        vol = f"vol. {source.volume}" if source.volume else None
        no = f"no. {source.issue}" if source.issue else None
        pages = f"pp. {source.pages}" if source.pages else None
        rest = _join(source.publication, vol, no, pages, str(source.year), sep=", ")
        return _join(f'{authors}, "{source.title},"', _sentence(rest))
    publication = _join(_place_publisher(source), str(source.year), sep=", ")
    return _join(f"{authors}, {_sentence(source.title)}", _sentence(publication))


def _format_vancouver(source: Source) -> str:
    head = _sentence(_vancouver_names(source))
    if _is_periodical(source):
        tail = str(source.year)
        if _volume_issue(source):
            tail += f";{_volume_issue(source)}"
        if source.pages:
            tail += f":{source.pages}"
        return _join(head, _sentence(source.title), _sentence(source.publication or ""), _sentence(tail))
    publication = _join(_place_publisher(source), str(source.year), sep="; ")
    return _join(head, _sentence(source.title), _sentence(publication))


_FULL_FORMATTERS: dict[CitationFormat, Callable[[Source], str]] = {
    CitationFormat.APA: _format_apa,
    CitationFormat.HARVARD: _format_harvard,
    CitationFormat.MLA: _format_mla,
    CitationFormat.CHICAGO: _format_chicago,
    CitationFormat.IEEE: _format_ieee,
    CitationFormat.VANCOUVER: _format_vancouver,
}


# =============================================================================
# CitationFormatter
# =============================================================================

class CitationFormatter:
    """Format sources under a citation style.

    Example:
        >>> formatter = CitationFormatter()
        >>> [entry] = formatter.format_bibliography([source], get_style("apa"))
        >>> entry.full
        'Smith, J. (2020). A History of the War. Penguin.'
        >>> entry.inline
        '(Smith, 2020)'
    """

    def format_bibliography(
        self,
        sources: Sequence[Source],
        style: CitationStyle,
    ) -> list[FormattedCitation]:
        """Format every source, one entry each, in the given order.

        Numbered inline forms use the 1-based position in ``sources``.
        """
        return [
            FormattedCitation(
                id=f"{FORMATTED_ID_PREFIX}-{source.id}",
                source_id=source.id,
                inline=self.format_inline(source, style, number),
                full=self.format_full(source, style),
                style=style,
            )
            for number, source in enumerate(sources, start=1)
        ]

    def format_inline(self, source: Source, style: CitationStyle, number: int = 1) -> str:
        """Short in-text form: author-year for inline styles, [N] otherwise."""
        if style.inline_style != InlineStyle.INLINE:
            return f"[{number}]"
        try:
            families = [_family(n) for n in parse_author(source.author)]
            if len(families) > 2:
                who = f"{families[0]} et al."
            else:
                who = " & ".join(families) or source.author
            return f"({who}, {source.year})"
        except Exception as exc:
            logger.warning("inline_format_fallback", source_id=getattr(source, "id", None), error=str(exc))
            return f"({getattr(source, 'author', '')}, {getattr(source, 'year', '')})"

    def format_full(self, source: Source, style: CitationStyle) -> str:
        """Full bibliography entry, or the minimal fallback on failure."""
        try:
            formatter = _FULL_FORMATTERS[CitationFormat(style.format)]
            entry = formatter(source)
            if not entry.strip():
                raise ValueError("empty entry")
            return entry
        except Exception as exc:
            logger.warning(
                "citation_format_fallback",
                source_id=getattr(source, "id", None),
                style=getattr(style, "id", None),
                error=str(exc),
            )
            return self.format_fallback(source)

    def format_fallback(self, source: Source) -> str:
        author = getattr(source, "author", None) or "Unknown"
        year = getattr(source, "year", None) or "n.d."
        title = getattr(source, "title", None) or "Untitled"
        return f"{author} ({year}). {title}."

    def to_csl(self, source: Source) -> dict[str, Any]:
        """Map a source to a CSL-JSON item."""
        csl: dict[str, Any] = {
            "id": source.id,
            "type": CSL_TYPES.get(source.type.value, "document"),
            "title": source.title,
            "author": parse_author(source.author),
            "issued": {"date-parts": [[source.year]]},
        }
        if source.publication:
            if source.type == SourceType.BOOK:
                csl["publisher"] = source.publication
            else:
                csl["container-title"] = source.publication
        optional = {
            "volume": source.volume,
            "issue": source.issue,
            "page": source.pages,
            "URL": source.url,
            "DOI": source.doi,
            "publisher": source.publisher,
            "publisher-place": source.location,
            "ISBN": source.isbn,
        }
        csl.update({k: v for k, v in optional.items() if v})
        if source.access_date:
            year = source.access_date[:4]
            if year.isdigit():
                csl["accessed"] = {"date-parts": [[int(year)]]}
        return csl


def document_bibliography(
    doc: CitationDocument,
    formatter: CitationFormatter | None = None,
) -> list[FormattedCitation]:
    """Bibliography of the sources actually cited in a document."""
    formatter = formatter or CitationFormatter()
    return formatter.format_bibliography(doc.cited_sources(), doc.style)


__all__ = [
    "AVAILABLE_STYLES",
    "CitationFormatter",
    "document_bibliography",
    "get_available_styles",
    "get_style",
    "parse_author",
]
