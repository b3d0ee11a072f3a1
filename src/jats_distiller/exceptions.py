"""Custom exceptions for the conversion engine."""


class ConversionError(Exception):
    """Base exception for all conversion errors."""

    kind = "ConversionFailed"

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class MalformedSourceError(ConversionError):
    """Raised when input cannot be parsed as its claimed format."""

    kind = "MalformedSource"


class UnsupportedFormatError(ConversionError):
    """Raised when the source format is not recognized."""

    kind = "UnsupportedFormat"


class UnresolvedCitationError(ConversionError):
    """Raised when citations do not resolve and the policy is fatal."""

    kind = "UnresolvedCitation"

    def __init__(self, message: str, markers: list | None = None, *args, **kwargs):
        self.markers = markers or []
        super().__init__(message, *args, **kwargs)


class ConversionFailedError(ConversionError):
    """Raised when a downstream library fails during conversion."""

    kind = "ConversionFailed"
