"""Test package for citations.

Contains unit tests for:
- SourceRegistry
- SelectionCapture and editor adapters
- AnnotationManager numbering and marker sync
- MarkerSynchronizer
- CitationFormatter
- CitationStore and CitationWorkflow
"""
