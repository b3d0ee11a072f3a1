"""Asset extractor for media embedded in DOCX packages.

Scans the zip archive of a source document for binary media and returns
the raw bytes with their MIME types. The source bytes are never modified.
"""

import io
import logging
import posixpath
import zipfile
import zlib

from lxml import etree

from schemas.media import MediaAsset

logger = logging.getLogger(__name__)

CONTENT_TYPES_NS = "http://schemas.openxmlformats.org/package/2006/content-types"
MEDIA_DIRS = ("word/media/", "media/")

MAGIC_NUMBERS = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
    (b"BM", "image/bmp"),
]


class AssetExtractor:
    """Extract embedded media from a source archive.

    The AssetExtractor:
    1. Opens the source bytes as a zip archive (anything else has no media)
    2. Reads the package content types, if present
    3. Collects every file under a media folder in archive order,
       skipping entries that cannot be decompressed
    4. Resolves each file's MIME type and wraps it in a MediaAsset

    Attributes:
        accepted_media_types: If set, only media of these types are returned
    """

    def __init__(self, accepted_media_types: set[str] | None = None):
        self.accepted_media_types = accepted_media_types

    def extract(self, source: bytes | None) -> dict[str, MediaAsset]:
        """Extract media from a source archive.

        Args:
            source: Raw document bytes

        Returns:
            Dict mapping media file names to MediaAsset objects, in
            archive order. Empty if the source is empty or not an archive.
        """
        if not source or not zipfile.is_zipfile(io.BytesIO(source)):
            return {}

        assets: dict[str, MediaAsset] = {}
        with zipfile.ZipFile(io.BytesIO(source)) as archive:
            content_types = self._read_content_types(archive)
            for info in archive.infolist():
                if info.is_dir() or not info.filename.startswith(MEDIA_DIRS):
                    continue

                try:
                    data = archive.read(info)
                except (zipfile.BadZipFile, zlib.error, EOFError) as e:
                    logger.warning(f"Skipping unreadable media entry {info.filename}: {e}")
                    continue
                if not data:
                    logger.debug(f"Skipping empty media entry {info.filename}")
                    continue

                name = posixpath.basename(info.filename)
                media_type = self._get_media_type(info.filename, data, content_types)
                if (
                    self.accepted_media_types is not None
                    and media_type not in self.accepted_media_types
                ):
                    logger.debug(f"Skipping {name}: {media_type} not accepted")
                    continue

                assets[name] = MediaAsset(
                    id=f"fig-{len(assets) + 1}",
                    name=name,
                    media_type=media_type,
                    path=info.filename,
                    data=data,
                )

        logger.debug(f"Extracted {len(assets)} media files")
        return assets

    def _read_content_types(self, archive: zipfile.ZipFile) -> dict[str, str]:
        """Read [Content_Types].xml into a lookup table.

        Overrides are keyed by part name ("/word/media/image1.png"),
        defaults by lowercase extension ("png").
        """
        try:
            data = archive.read("[Content_Types].xml")
        except KeyError:
            return {}

        try:
            root = etree.fromstring(data)
        except etree.XMLSyntaxError as e:
            logger.warning(f"Ignoring unreadable [Content_Types].xml: {e}")
            return {}

        table: dict[str, str] = {}
        for default in root.iter(f"{{{CONTENT_TYPES_NS}}}Default"):
            extension = default.get("Extension")
            if extension:
                table[extension.lower()] = default.get("ContentType", "")
        for override in root.iter(f"{{{CONTENT_TYPES_NS}}}Override"):
            part_name = override.get("PartName")
            if part_name:
                table[part_name] = override.get("ContentType", "")
        return table

    def _get_media_type(
        self, filename: str, data: bytes, content_types: dict[str, str]
    ) -> str:
        """Determine the MIME type of a media file.

        Magic bytes win over the package content types, which win over
        the file extension.
        """
        for magic, media_type in MAGIC_NUMBERS:
            if data.startswith(magic):
                return media_type

        if declared := content_types.get(f"/{filename}"):
            return declared

        extension = posixpath.splitext(filename)[1].lstrip(".").lower()
        if declared := content_types.get(extension):
            return declared

        mime_types = {
            "jpg": "image/jpeg",
            "jpeg": "image/jpeg",
            "png": "image/png",
            "gif": "image/gif",
            "webp": "image/webp",
            "svg": "image/svg+xml",
            "emf": "image/x-emf",
            "wmf": "image/x-wmf",
        }
        return mime_types.get(extension, "application/octet-stream")


def extract_assets(
    source: bytes | None, accepted_media_types: set[str] | None = None
) -> dict[str, MediaAsset]:
    """Extract embedded media from source bytes.

    Args:
        source: Raw document bytes
        accepted_media_types: Optional set of MIME types to keep

    Returns:
        Dict mapping media file names to MediaAsset objects
    """
    return AssetExtractor(accepted_media_types).extract(source)
