"""Converter selection by source format."""

import logging

from jats_distiller.exceptions import UnsupportedFormatError
from schemas.article import ArticleDocument
from schemas.metadata import JournalMetadata
from schemas.options import ConversionOptions, SourceFormat

from .converter import Converter
from .docx_converter import DOCXConverter
from .jats_converter import JATSConverter

logger = logging.getLogger(__name__)


def resolve_format(source: bytes, source_format: SourceFormat | str | None) -> SourceFormat:
    """Resolve a requested source format.

    Args:
        source: Raw document bytes, sniffed when no format is given
        source_format: Requested format, its string value, or None to detect

    Returns:
        The SourceFormat to convert from

    Raises:
        UnsupportedFormatError: If the format is unknown or cannot be detected
    """
    if source_format is None or source_format == "auto":
        detected = SourceFormat.detect(source or b"")
        if detected is None:
            raise UnsupportedFormatError("Source is neither a DOCX package nor XML")
        logger.debug(f"Detected source format {detected.value}")
        return detected

    try:
        return SourceFormat(source_format)
    except ValueError as e:
        raise UnsupportedFormatError(f"Unsupported source format: {source_format!r}") from e


def get_converter(
    source_format: SourceFormat, options: ConversionOptions | None = None
) -> Converter:
    """Return the converter for a source format."""
    options = options or ConversionOptions()
    if source_format is SourceFormat.DOCX:
        return DOCXConverter()
    return JATSConverter(preserve_article_type=options.preserve_article_type)


def convert_to_article(
    source: bytes,
    source_format: SourceFormat | str | None,
    metadata: JournalMetadata | None = None,
    options: ConversionOptions | None = None,
) -> ArticleDocument:
    """Convert raw source bytes into a JATS article tree.

    Args:
        source: Raw document bytes
        source_format: Format of the source, or None to detect it
        metadata: Optional journal metadata for the front matter
        options: Conversion options

    Returns:
        ArticleDocument for the converted source

    Raises:
        MalformedSourceError: If the source cannot be parsed
        UnsupportedFormatError: If the format is not supported
    """
    resolved = resolve_format(source, source_format)
    return get_converter(resolved, options).convert(source, metadata)
