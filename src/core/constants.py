"""Citation engine constants.

Provides centralized constants for:
- Marker token templates per inline style
- Identifier prefixes
- CSL type mapping
"""


# =============================================================================
# Marker Token Templates
# =============================================================================

SUPERSCRIPT_LINK_MARKER = '<sup><a href="#cite-{n}" class="citation-link">[{n}]</a></sup>'
SUPERSCRIPT_MARKER = '<sup class="citation-note" data-note="{n}">{n}</sup>'
INLINE_MARKER = " (Citation {n})"

# Matches the visible number of each template. Group "n" is the note id.
# Only these exact shapes are markers; author-written <sup> content is text.
SUPERSCRIPT_LINK_PATTERN = (
    r'<sup><a href="#cite-(?P<href>\d+)" class="citation-link">\[(?P<n>\d+)\]</a></sup>'
)
SUPERSCRIPT_PATTERN = r'<sup class="citation-note" data-note="(?P<ref>\d+)">(?P<n>\d+)</sup>'
INLINE_PATTERN = r" \(Citation (?P<n>\d+)\)"


# =============================================================================
# Identifier Prefixes
# =============================================================================

SOURCE_ID_PREFIX = "source"
ANNOTATION_ID_PREFIX = "annotation"
FORMATTED_ID_PREFIX = "formatted"


# =============================================================================
# CSL-JSON Types
# =============================================================================

CSL_TYPES: dict[str, str] = {
    "book": "book",
    "journal": "article-journal",
    "website": "webpage",
    "newspaper": "article-newspaper",
    "magazine": "article-magazine",
    "thesis": "thesis",
    "conference": "paper-conference",
    "other": "document",
}
