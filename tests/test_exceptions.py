"""Tests for conversion exceptions."""

import pytest

from jats_distiller.exceptions import (
    ConversionError,
    ConversionFailedError,
    MalformedSourceError,
    UnresolvedCitationError,
    UnsupportedFormatError,
)
from schemas import CitationMarker


class TestConversionError:
    """Tests for the base exception."""

    def test_message_stored(self):
        """The message is kept on the exception."""
        error = ConversionError("went wrong")

        assert error.message == "went wrong"
        assert str(error) == "went wrong"

    def test_default_kind(self):
        """The base kind is ConversionFailed."""
        assert ConversionError("x").kind == "ConversionFailed"


class TestSubclasses:
    """Tests for specific conversion errors."""

    @pytest.mark.parametrize(
        "cls, kind",
        [
            (MalformedSourceError, "MalformedSource"),
            (UnsupportedFormatError, "UnsupportedFormat"),
            (UnresolvedCitationError, "UnresolvedCitation"),
            (ConversionFailedError, "ConversionFailed"),
        ],
    )
    def test_kinds(self, cls, kind):
        """Each error reports its kind and is a ConversionError."""
        error = cls("message")

        assert error.kind == kind
        assert isinstance(error, ConversionError)

    def test_unresolved_markers(self):
        """UnresolvedCitationError carries the unresolved markers."""
        marker = CitationMarker(text="[9]", unresolved=["9"])

        error = UnresolvedCitationError("1 unresolved", markers=[marker])

        assert error.markers == [marker]
        assert UnresolvedCitationError("none").markers == []

    def test_catch_as_base(self):
        """Specific errors can be caught as ConversionError."""
        with pytest.raises(ConversionError):
            raise MalformedSourceError("bad")
