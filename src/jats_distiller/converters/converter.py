"""Base class for structural converters and JATS emission helpers.

Converters read a source document and produce an ArticleDocument holding
a JATS <article> tree. Every tree declares the xlink namespace exactly
once, on the root element.
"""

import copy
from abc import ABC, abstractmethod

from lxml import etree

from schemas.article import XLINK_NS, ArticleDocument
from schemas.metadata import JournalMetadata

JATS_PUBLIC_ID = (
    "-//NLM//DTD JATS (Z39.96) Journal Archiving and Interchange DTD v1.2 20190208//EN"
)
JATS_SYSTEM_ID = "JATS-archivearticle1.dtd"
JATS_DOCTYPE = f'<!DOCTYPE article PUBLIC "{JATS_PUBLIC_ID}" "{JATS_SYSTEM_ID}">'
DEFAULT_ARTICLE_TYPE = "research-article"


class Converter(ABC):
    """Abstract base class for source-to-JATS converters."""

    @abstractmethod
    def convert(
        self, source: bytes, metadata: JournalMetadata | None = None
    ) -> ArticleDocument:
        """Convert raw source bytes into a JATS article.

        Args:
            source: Raw document bytes
            metadata: Optional journal metadata for the front matter

        Returns:
            ArticleDocument with front, body and back populated

        Raises:
            MalformedSourceError: If the source cannot be parsed
        """
        pass

    def _new_article(self, namespaces: dict[str, str] | None = None) -> etree._Element:
        """Create an <article> root with the canonical xlink binding."""
        nsmap = dict(namespaces or {})
        nsmap["xlink"] = XLINK_NS
        return etree.Element("article", nsmap=nsmap)


def clone_into(parent: etree._Element, source: etree._Element) -> etree._Element:
    """Append a copy of a source subtree under parent.

    Namespaces whose URI is already in scope at parent are not declared
    again on the copy, so the result never carries duplicate bindings.

    Args:
        parent: Element to append the copy to
        source: Element (or comment/PI/entity) to copy

    Returns:
        The appended copy
    """
    if not isinstance(source.tag, str):
        node = copy.copy(source)
        parent.append(node)
        return node

    bound = set(parent.nsmap.values())
    nsmap = {prefix: uri for prefix, uri in source.nsmap.items() if uri not in bound}
    node = etree.SubElement(parent, source.tag, nsmap=nsmap or None)
    for name, value in source.attrib.items():
        node.set(name, value)
    node.text = source.text
    node.tail = source.tail
    for child in source:
        clone_into(node, child)
    return node


def clone_content(target: etree._Element, source: etree._Element) -> None:
    """Copy the text and children of source into target."""
    target.text = source.text
    for child in source:
        clone_into(target, child)


def serialize_article(article: ArticleDocument) -> bytes:
    """Serialize an article as canonical JATS XML.

    Args:
        article: The article to serialize

    Returns:
        UTF-8 encoded XML with declaration and JATS Archiving DOCTYPE
    """
    return etree.tostring(
        article.root.getroottree(),
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=True,
        doctype=JATS_DOCTYPE,
    )
