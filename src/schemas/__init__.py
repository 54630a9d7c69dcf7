"""Pydantic Schemas Package.

This package contains Pydantic models for:
- Sources and their create/update payloads
- Text annotations and captured selections
- Citation styles and formatted citations
- The per-excerpt CitationDocument aggregate

All schemas support JSON Schema export via model_json_schema().

Pattern: Typed Data Transfer Objects (DTOs)
"""

from src.schemas.citations import (
    CitationDocument,
    CitationFormat,
    CitationStyle,
    FormattedCitation,
    InlineStyle,
    Source,
    SourceInput,
    SourcePatch,
    SourceType,
    TextAnnotation,
    TextSelection,
)


__all__: list[str] = [
    "CitationDocument",
    "CitationFormat",
    "CitationStyle",
    "FormattedCitation",
    "InlineStyle",
    "Source",
    "SourceInput",
    "SourcePatch",
    "SourceType",
    "TextAnnotation",
    "TextSelection",
]
