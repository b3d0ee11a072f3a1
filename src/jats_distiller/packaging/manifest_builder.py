"""Manifest builder for converted manuscripts.

Lists every figure of a JATS article that carries a graphic, so that an
editor receiving the manuscript knows which media it references.
"""

import logging

from lxml import etree

from jats_distiller.exceptions import MalformedSourceError
from schemas.article import XLINK_NS
from schemas.manifest import ConversionManifest, ManifestAsset, ManifestDocument

logger = logging.getLogger(__name__)

ASSET_MEDIA_TYPE = "image/jpg"
FIG_ID_PREFIX = "ojs-fig-"


def parse_article_xml(article_xml: str | bytes) -> etree._Element:
    """Parse article XML without touching the network or loading DTDs.

    Raises:
        MalformedSourceError: If the XML cannot be parsed
    """
    if isinstance(article_xml, str):
        article_xml = article_xml.encode("utf-8")
    parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)
    try:
        return etree.fromstring(article_xml, parser)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise MalformedSourceError(f"Article XML could not be parsed: {e}") from e


def build_manifest(article_xml: str | bytes) -> ConversionManifest:
    """Build the manifest of a JATS article.

    Figures are visited in document order. A figure with at least one
    <graphic> yields one asset whose id is the figure's id attribute, or
    "ojs-fig-<position>" when it has none, and whose path is the href of
    its first graphic. Figures without graphics are skipped but still
    count towards positions.

    Args:
        article_xml: Canonical JATS XML

    Returns:
        ConversionManifest with one document entry and the asset entries

    Raises:
        MalformedSourceError: If the XML cannot be parsed
    """
    root = parse_article_xml(article_xml)

    assets = []
    for position, fig in enumerate(root.iter("fig"), start=1):
        graphic = next(fig.iter("graphic"), None)
        if graphic is None:
            logger.debug(f"Skipping figure {position}: no graphic")
            continue
        assets.append(
            ManifestAsset(
                id=fig.get("id") or f"{FIG_ID_PREFIX}{position}",
                type=ASSET_MEDIA_TYPE,
                path=graphic.get(f"{{{XLINK_NS}}}href", ""),
            )
        )

    logger.info(f"Built manifest with {len(assets)} assets")
    return ConversionManifest(document=ManifestDocument(), assets=tuple(assets))


def manifest_to_xml(manifest: ConversionManifest) -> bytes:
    """Serialize a manifest as a DAR manifest.xml document."""
    dar = etree.Element("dar")

    documents = etree.SubElement(dar, "documents")
    etree.SubElement(
        documents,
        "document",
        id=manifest.document.id,
        type=manifest.document.type,
        path=manifest.document.path,
    )

    assets = etree.SubElement(dar, "assets")
    for asset in manifest.assets:
        etree.SubElement(assets, "asset", id=asset.id, type=asset.type, path=asset.path)

    return etree.tostring(dar, xml_declaration=True, encoding="UTF-8", pretty_print=True)
