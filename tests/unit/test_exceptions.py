"""Unit tests for custom exceptions.

Pattern: Custom exception hierarchy
"""

import warnings

import pytest

from src.core.exceptions import (
    AnnotationNotFoundError,
    CitationError,
    CitationValidationError,
    InvalidSourceError,
    MarkerSyncWarning,
    ReferentialError,
    SourceInUseError,
    SourceNotFoundError,
)


class TestCitationError:
    """Tests for base CitationError exception."""

    def test_citation_error_is_exception(self) -> None:
        assert issubclass(CitationError, Exception)

    def test_citation_error_message(self) -> None:
        error = CitationError("Test error message", excerpt_id="excerpt-1")

        assert str(error) == "Test error message"
        assert error.excerpt_id == "excerpt-1"

    def test_citation_error_can_be_raised(self) -> None:
        with pytest.raises(CitationError):
            raise CitationError("Test")


class TestCitationValidationError:
    """Tests for CitationValidationError exception."""

    def test_validation_error_inherits_citation_error(self) -> None:
        assert issubclass(CitationValidationError, CitationError)

    def test_validation_error_stores_field(self) -> None:
        error = CitationValidationError(
            message="Invalid source",
            field="title",
            value="",
            errors=[{"field": "title", "message": "must not be empty"}],
        )

        assert error.field == "title"
        assert error.value == ""
        assert error.errors == [{"field": "title", "message": "must not be empty"}]


class TestReferentialErrors:
    """Tests for id resolution errors."""

    @pytest.mark.parametrize(
        "exc_class",
        [InvalidSourceError, SourceNotFoundError, AnnotationNotFoundError, SourceInUseError],
    )
    def test_referential_errors_share_base(self, exc_class: type) -> None:
        assert issubclass(exc_class, ReferentialError)
        assert issubclass(exc_class, CitationError)

    def test_invalid_source_error(self) -> None:
        error = InvalidSourceError("source-1", "excerpt-1")

        assert error.source_id == "source-1"
        assert "source-1" in str(error)

    def test_annotation_not_found_error(self) -> None:
        error = AnnotationNotFoundError("annotation-1")

        assert error.annotation_id == "annotation-1"

    def test_source_in_use_error(self) -> None:
        error = SourceInUseError("source-1", ["annotation-1", "annotation-2"])

        assert error.annotation_ids == ["annotation-1", "annotation-2"]
        assert "2 annotation(s)" in str(error)


class TestMarkerSyncWarning:
    """Tests for MarkerSyncWarning."""

    def test_is_user_warning_not_citation_error(self) -> None:
        assert issubclass(MarkerSyncWarning, UserWarning)
        assert not issubclass(MarkerSyncWarning, CitationError)

    def test_stores_details(self) -> None:
        warning = MarkerSyncWarning("not found", kind=MarkerSyncWarning.NOT_FOUND, note_id=2, text="war")

        assert warning.kind == "not_found"
        assert warning.note_id == 2
        assert warning.text == "war"

    def test_can_be_issued(self) -> None:
        with pytest.warns(MarkerSyncWarning):
            warnings.warn(MarkerSyncWarning("ambiguous", kind=MarkerSyncWarning.AMBIGUOUS))
