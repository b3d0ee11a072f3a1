"""DAR packager for round-trip editing.

Wraps a converted manuscript, its manifest and its media into the JSON
resource map read by DAR editors, and merges an edited manuscript back
into the original.
"""

import base64
import binascii
import logging
import re
from collections.abc import Callable, Iterable
from pathlib import Path

from lxml import etree

from jats_distiller.converters.converter import clone_content
from jats_distiller.exceptions import MalformedSourceError, UnsupportedFormatError
from schemas.dar import DAR_MANIFEST_FILE, DAR_MANUSCRIPT_FILE, DARBundle, DARResource
from schemas.media import MediaAsset

from .manifest_builder import build_manifest, manifest_to_xml, parse_article_xml

logger = logging.getLogger(__name__)

DAR_VERSION = 1
EDITABLE_SECTIONS = ("body", "back")
UPLOAD_MEDIA_TYPES = ("image/png", "image/jpeg")
DATA_URL = re.compile(
    r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+)?(?:;[^,;]+)*;base64,(?P<payload>.*)$",
    re.S,
)


class DARPackager:
    """Build DAR bundles and apply editor round-trips.

    Attributes:
        media_url: Optional resolver returning the URL a media asset is
            served from; without one, media are embedded as base64
    """

    def __init__(self, media_url: Callable[[MediaAsset], str] | None = None):
        self.media_url = media_url

    def build_bundle(
        self,
        manuscript_xml: str | bytes,
        media: Iterable[MediaAsset] = (),
        media_url: Callable[[MediaAsset], str] | None = None,
    ) -> DARBundle:
        """Build the DAR resource map for a manuscript.

        Args:
            manuscript_xml: Canonical JATS XML of the manuscript
            media: Media assets referenced by the manuscript
            media_url: Resolver overriding the packager's own

        Returns:
            DARBundle with manifest, manuscript and one resource per medium

        Raises:
            MalformedSourceError: If the manuscript cannot be parsed
        """
        if isinstance(manuscript_xml, str):
            manuscript_xml = manuscript_xml.encode("utf-8")
        resolve = media_url or self.media_url

        manifest_xml = manifest_to_xml(build_manifest(manuscript_xml))
        resources = {
            DAR_MANIFEST_FILE: _text_resource(manifest_xml),
            DAR_MANUSCRIPT_FILE: _text_resource(manuscript_xml),
        }

        for asset in media:
            if resolve is not None:
                resources[asset.name] = DARResource(encoding="url", data=resolve(asset))
            else:
                resources[asset.name] = DARResource(
                    encoding="base64",
                    data=base64.b64encode(asset.data).decode("ascii"),
                    size=asset.size,
                    created_at=0,
                    updated_at=0,
                )
            logger.debug(f"Added media resource {asset.name}")

        logger.info(f"Built DAR bundle with {len(resources)} resources")
        return DARBundle(version=DAR_VERSION, resources=resources)

    def apply_edits(self, original_xml: str | bytes, edited_xml: str | bytes) -> bytes:
        """Merge an edited manuscript back into the original.

        The edited <body> and <back> replace the original ones; the
        original front matter and root attributes are kept. A section
        missing from the edited manuscript is removed from the original.

        Args:
            original_xml: The manuscript as it was handed to the editor
            edited_xml: The manuscript as saved by the editor

        Returns:
            The merged manuscript as UTF-8 XML bytes

        Raises:
            MalformedSourceError: If either document cannot be parsed
        """
        original = parse_article_xml(original_xml)
        edited = parse_article_xml(edited_xml)

        for tag in EDITABLE_SECTIONS:
            old = original.find(tag)
            new = edited.find(tag)
            if new is None:
                if old is not None:
                    logger.debug(f"Edited manuscript has no <{tag}>, removing it")
                    _remove_keeping_tail(old)
                continue
            if old is None:
                old = etree.Element(tag)
                back = original.find("back")
                if tag == "body" and back is not None:
                    back.addprevious(old)
                else:
                    original.append(old)
            tail = old.tail
            old.clear()
            for name, value in new.attrib.items():
                old.set(name, value)
            clone_content(old, new)
            old.tail = tail

        logger.info("Applied edited body and back to manuscript")
        return etree.tostring(
            original.getroottree(),
            xml_declaration=True,
            encoding="UTF-8",
            pretty_print=True,
        )


def _text_resource(data: bytes) -> DARResource:
    return DARResource(
        encoding="utf8",
        data=data.decode("utf-8"),
        size=len(data),
        created_at=0,
        updated_at=0,
    )


def decode_media_upload(
    file_name: str,
    data: str,
    accepted_media_types: Iterable[str] = UPLOAD_MEDIA_TYPES,
) -> MediaAsset:
    """Decode a media file uploaded by an editor as a base64 data URL.

    Args:
        file_name: Name the editor gave the file
        data: Payload of the form "data:<type>;base64,<content>"
        accepted_media_types: MIME types that may be uploaded

    Returns:
        MediaAsset holding the decoded bytes

    Raises:
        MalformedSourceError: If the payload is not a base64 data URL
        UnsupportedFormatError: If the media type is not accepted
    """
    match = DATA_URL.match(data.strip())
    if not match:
        raise MalformedSourceError(f"Upload {file_name} is not a base64 data URL")

    media_type = match.group("media_type") or "application/octet-stream"
    if media_type not in accepted_media_types:
        raise UnsupportedFormatError(f"Upload {file_name} has unsupported type {media_type}")

    try:
        content = base64.b64decode(match.group("payload"), validate=True)
    except binascii.Error as e:
        raise MalformedSourceError(f"Upload {file_name} has invalid base64 data: {e}") from e

    logger.info(f"Decoded upload {file_name} ({media_type}, {len(content)} bytes)")
    return MediaAsset(
        id=Path(file_name).stem,
        name=file_name,
        media_type=media_type,
        path=file_name,
        data=content,
    )


def _remove_keeping_tail(element: etree._Element) -> None:
    previous = element.getprevious()
    parent = element.getparent()
    if element.tail:
        if previous is not None:
            previous.tail = (previous.tail or "") + element.tail
        else:
            parent.text = (parent.text or "") + element.tail
    parent.remove(element)
