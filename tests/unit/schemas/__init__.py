"""Test package for schemas.

Contains unit tests for:
- Source, SourceInput
- TextSelection validity
- CitationStyle
- CitationDocument and camelCase serialization
"""
