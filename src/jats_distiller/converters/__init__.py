"""Structural converters from source documents to JATS articles."""

from .converter import Converter, serialize_article
from .docx_converter import DOCXConverter
from .factory import convert_to_article, get_converter, resolve_format
from .jats_converter import JATSConverter

__all__ = [
    "Converter",
    "DOCXConverter",
    "JATSConverter",
    "convert_to_article",
    "get_converter",
    "resolve_format",
    "serialize_article",
]
