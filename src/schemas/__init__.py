"""Schema definitions for JATS Distiller."""

from .article import ArticleDocument
from .dar import DAR_MANIFEST_FILE, DAR_MANUSCRIPT_FILE, DARBundle, DARResource
from .manifest import ConversionManifest, ManifestAsset, ManifestDocument
from .media import MediaAsset
from .metadata import JournalMetadata
from .options import ConversionOptions, SourceFormat
from .reference import CitationMarker, Reference
from .result import ConversionResult

__all__ = [
    "ArticleDocument",
    "CitationMarker",
    "ConversionManifest",
    "ConversionOptions",
    "ConversionResult",
    "DAR_MANIFEST_FILE",
    "DAR_MANUSCRIPT_FILE",
    "DARBundle",
    "DARResource",
    "JournalMetadata",
    "ManifestAsset",
    "ManifestDocument",
    "MediaAsset",
    "Reference",
    "SourceFormat",
]
