"""Tests for the Asset Extractor."""

import io
import logging
import zipfile

from jats_distiller.extractors import AssetExtractor, extract_assets

from conftest import make_png

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="dat" ContentType="image/x-custom"/>'
    '<Override PartName="/word/media/special.bin" ContentType="image/special"/>'
    "</Types>"
)


def _zip(entries: dict[str, bytes | str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


class TestAssetExtractor:
    """Tests for extracting media from archives."""

    def test_docx_media_extracted(self, docx_bytes):
        """Both pictures of the sample manuscript are returned."""
        assets = extract_assets(docx_bytes)

        assert list(assets) == ["image1.png", "image2.png"]
        assert all(a.media_type == "image/png" for a in assets.values())

    def test_asset_fields(self, png_bytes):
        """Assets carry name, path, data, id and owner."""
        assets = extract_assets(_zip({"word/media/image1.png": png_bytes}))

        asset = assets["image1.png"]
        assert asset.path == "word/media/image1.png"
        assert asset.data == png_bytes
        assert asset.size == len(png_bytes)
        assert asset.id == "fig-1"
        assert asset.owner_id == "manuscript"

    def test_ids_follow_archive_order(self, png_bytes):
        """Ids are numbered in archive order."""
        assets = extract_assets(
            _zip({"word/media/b.png": png_bytes, "word/media/a.png": png_bytes})
        )

        assert [(name, a.id) for name, a in assets.items()] == [("b.png", "fig-1"), ("a.png", "fig-2")]

    def test_non_media_entries_ignored(self, png_bytes):
        """Entries outside media folders are skipped."""
        assets = extract_assets(
            _zip({"word/document.xml": "<w/>", "docProps/thumbnail.png": png_bytes})
        )

        assert assets == {}

    def test_top_level_media_folder(self, png_bytes):
        """A plain media/ folder is scanned as well."""
        assets = extract_assets(_zip({"media/pic.png": png_bytes}))

        assert list(assets) == ["pic.png"]

    def test_empty_entries_skipped(self):
        """Zero-length media files are not returned."""
        assert extract_assets(_zip({"word/media/empty.png": b""})) == {}

    def test_corrupt_entry_skipped(self, png_bytes, caplog):
        """A media entry failing its CRC check is skipped with a warning."""
        source = _zip({"word/media/bad.png": b"broken-image-bytes", "word/media/good.png": png_bytes})
        corrupted = source.replace(b"broken-image-bytes", b"BROKEN-image-bytes")

        with caplog.at_level(logging.WARNING):
            assets = extract_assets(corrupted)

        assert list(assets) == ["good.png"]
        assert assets["good.png"].id == "fig-1"
        assert "word/media/bad.png" in caplog.text


class TestMediaTypes:
    """Tests for media type resolution."""

    def test_magic_bytes_win(self, png_bytes):
        """PNG bytes are detected whatever the extension."""
        assets = extract_assets(_zip({"word/media/image.jpg": png_bytes}))

        assert assets["image.jpg"].media_type == "image/png"

    def test_jpeg_magic(self):
        """JPEG magic bytes are recognised."""
        assets = extract_assets(_zip({"word/media/photo.bin": b"\xff\xd8\xff\xe0rest"}))

        assert assets["photo.bin"].media_type == "image/jpeg"

    def test_content_type_override(self):
        """A part override in [Content_Types].xml is used."""
        source = _zip({"[Content_Types].xml": CONTENT_TYPES, "word/media/special.bin": b"data"})

        assert extract_assets(source)["special.bin"].media_type == "image/special"

    def test_content_type_default(self):
        """A default by extension in [Content_Types].xml is used."""
        source = _zip({"[Content_Types].xml": CONTENT_TYPES, "word/media/x.dat": b"data"})

        assert extract_assets(source)["x.dat"].media_type == "image/x-custom"

    def test_extension_fallback(self):
        """Without magic bytes or content types the extension decides."""
        assert extract_assets(_zip({"word/media/d.svg": b"<svg/>"}))["d.svg"].media_type == "image/svg+xml"

    def test_unknown_type(self):
        """Unknown media fall back to application/octet-stream."""
        assets = extract_assets(_zip({"word/media/blob.xyz": b"data"}))

        assert assets["blob.xyz"].media_type == "application/octet-stream"


class TestNonArchiveInput:
    """Tests for input without media."""

    def test_empty_input(self):
        """Empty input yields no assets."""
        assert extract_assets(b"") == {}

    def test_missing_input(self):
        """None yields no assets."""
        assert extract_assets(None) == {}

    def test_xml_input(self, sample_jats):
        """A JATS XML source has no embedded media."""
        assert extract_assets(sample_jats) == {}

    def test_source_not_modified(self, docx_bytes):
        """Extraction leaves the source bytes untouched."""
        original = bytes(docx_bytes)

        extract_assets(docx_bytes)

        assert docx_bytes == original


class TestAcceptedMediaTypes:
    """Tests for the media type filter."""

    def test_filter(self, png_bytes):
        """Only accepted media types are returned."""
        source = _zip({"word/media/a.png": png_bytes, "word/media/b.gif": b"GIF89a..."})

        assets = AssetExtractor({"image/png", "image/jpeg"}).extract(source)

        assert list(assets) == ["a.png"]

    def test_filtered_ids_stay_contiguous(self, png_bytes):
        """Skipped media do not consume ids."""
        source = _zip({"word/media/b.gif": b"GIF89a...", "word/media/a.png": make_png()})

        assets = extract_assets(source, accepted_media_types={"image/png"})

        assert assets["a.png"].id == "fig-1"
