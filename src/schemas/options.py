"""Conversion options and source formats."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class SourceFormat(str, Enum):
    """Source document formats accepted by the converter."""

    DOCX = "docx"
    JATS_XML = "jats_xml"

    @classmethod
    def detect(cls, data: bytes) -> "SourceFormat | None":
        """Guess the format of raw source bytes.

        Args:
            data: Raw document bytes

        Returns:
            The detected format, or None if the bytes look like neither
        """
        if data.startswith(b"PK\x03\x04"):
            return cls.DOCX
        head = data.lstrip(b"\xef\xbb\xbf").lstrip()
        if head.startswith(b"<"):
            return cls.JATS_XML
        return None


class ConversionOptions(BaseModel):
    """Per-conversion settings.

    Attributes:
        split_references: Split reference entries bundling several citations
        reorder_references: Reorder references by first in-text citation
        process_brackets: Turn bracketed citations into cross-references
        reference_check: Verify every citation resolves to a reference
        verbose_logging: Log every individual decision
        unresolved_citations: Whether unresolved citations warn or fail
        preserve_article_type: Keep the source article-type instead of
            forcing "research-article"
    """

    split_references: bool = False
    reorder_references: bool = False
    process_brackets: bool = False
    reference_check: bool = False
    verbose_logging: bool = False
    unresolved_citations: Literal["warning", "fatal"] = "warning"
    preserve_article_type: bool = False

    model_config = {"frozen": True}
