"""JATS Converter for normalizing loosely structured JATS XML.

Rebuilds a source article as a canonical JATS article: a fresh root with
clean namespace declarations, a generated front-matter skeleton, and the
source body and back matter copied over.
"""

import logging

from lxml import etree

from jats_distiller.exceptions import MalformedSourceError
from schemas.article import XLINK_NS, ArticleDocument
from schemas.metadata import JournalMetadata

from .converter import DEFAULT_ARTICLE_TYPE, Converter, clone_content, clone_into
from .front_matter import build_front

logger = logging.getLogger(__name__)


class JATSConverter(Converter):
    """Convert near-JATS XML into a canonical JATS article.

    The JATSConverter:
    1. Parses the source without loading DTDs or touching the network
    2. Moves elements in the root's default namespace into no namespace,
       then copies the root namespace declarations, except xlink
    3. Declares the canonical xlink namespace once on the new root
    4. Sets the article-type
    5. Attaches a front-matter skeleton, carrying over the source title
       and abstract when present
    6. Copies the source body and back

    Attributes:
        preserve_article_type: Keep the source article-type instead of
            replacing it with "research-article"
    """

    def __init__(self, preserve_article_type: bool = False):
        self.preserve_article_type = preserve_article_type

    def convert(
        self, source: bytes, metadata: JournalMetadata | None = None
    ) -> ArticleDocument:
        """Convert near-JATS XML bytes into a canonical JATS article.

        Args:
            source: Raw XML bytes
            metadata: Optional journal metadata for the front matter

        Returns:
            ArticleDocument for the rebuilt article

        Raises:
            MalformedSourceError: If the source is not well-formed XML
        """
        source_root = self._parse(source)
        diagnostics: list[str] = []
        self._strip_default_namespace(source_root, diagnostics)

        if etree.QName(source_root).localname != "article":
            diagnostics.append(
                f"[Warning] Root element is <{source_root.tag}>, expected <article>; "
                "body and back were not found"
            )

        root = self._new_article(self._collect_namespaces(source_root, diagnostics))
        root.set("article-type", self._article_type(source_root, diagnostics))

        root.append(build_front(metadata))
        self._carry_front(source_root, root)

        for name in ("body", "back"):
            for section in source_root.findall(name):
                clone_into(root, section)

        logger.debug(
            f"Rebuilt article with {len(root)} top-level sections "
            f"and namespaces {sorted(p for p in root.nsmap if p)}"
        )
        return ArticleDocument(root=root, source_format="jats_xml", diagnostics=diagnostics)

    def _parse(self, source: bytes) -> etree._Element:
        """Parse source bytes, raising MalformedSourceError on failure."""
        parser = etree.XMLParser(
            resolve_entities=False,
            no_network=True,
            load_dtd=False,
        )
        try:
            root = etree.fromstring(source, parser)
        except (etree.XMLSyntaxError, ValueError) as e:
            raise MalformedSourceError(f"Source is not well-formed XML: {e}") from e
        if root is None:
            raise MalformedSourceError("Source XML document is empty")
        return root

    def _strip_default_namespace(
        self, source_root: etree._Element, diagnostics: list[str]
    ) -> None:
        """Rename elements in the root's default namespace to unqualified names."""
        uri = source_root.nsmap.get(None)
        if uri is None:
            return

        qualifier = f"{{{uri}}}"
        renamed = 0
        for element in source_root.iter():
            if isinstance(element.tag, str) and element.tag.startswith(qualifier):
                element.tag = element.tag[len(qualifier):]
                renamed += 1
        etree.cleanup_namespaces(source_root)

        logger.debug(f"Moved {renamed} elements out of default namespace {uri}")
        diagnostics.append(
            f"[Warning] Default namespace {uri} was removed; its elements were kept unqualified"
        )

    def _collect_namespaces(
        self, source_root: etree._Element, diagnostics: list[str]
    ) -> dict[str, str]:
        """Collect the root namespace declarations to carry over.

        Any xlink declaration is dropped, whatever its prefix, since the
        new root binds xlink itself. A default namespace is not carried
        over, as the JATS vocabulary has none.
        """
        namespaces: dict[str, str] = {}
        for prefix, uri in source_root.nsmap.items():
            if prefix is None:
                diagnostics.append(f"[Warning] Default namespace {uri} was not carried over")
                continue
            if prefix == "xlink" or uri == XLINK_NS:
                continue
            namespaces[prefix] = uri
        return namespaces

    def _article_type(self, source_root: etree._Element, diagnostics: list[str]) -> str:
        source_type = source_root.get("article-type")
        if self.preserve_article_type and source_type:
            return source_type
        if source_type and source_type != DEFAULT_ARTICLE_TYPE:
            diagnostics.append(
                f"[Warning] article-type '{source_type}' replaced with "
                f"'{DEFAULT_ARTICLE_TYPE}'"
            )
        return DEFAULT_ARTICLE_TYPE

    def _carry_front(self, source_root: etree._Element, root: etree._Element) -> None:
        """Copy the source article title and abstract into the skeleton."""
        article_meta = root.find("front/article-meta")

        source_title = source_root.find("front/article-meta/title-group/article-title")
        if source_title is not None:
            clone_content(article_meta.find("title-group/article-title"), source_title)

        source_abstract = source_root.find("front/article-meta/abstract")
        if source_abstract is not None:
            clone_content(article_meta.find("abstract"), source_abstract)
