"""Article domain object."""

from dataclasses import dataclass, field

from lxml import etree

XLINK_NS = "http://www.w3.org/1999/xlink"


@dataclass
class ArticleDocument:
    """Represents one manuscript as a JATS article tree.

    The tree is owned by a single conversion call and is never shared
    between calls.

    Attributes:
        root: lxml <article> element
        source_format: Format the article was converted from
        diagnostics: Messages collected while the tree was built
    """

    root: etree._Element
    source_format: str = "jats_xml"
    diagnostics: list[str] = field(default_factory=list)

    @property
    def article_type(self) -> str | None:
        return self.root.get("article-type")

    @property
    def namespaces(self) -> dict[str | None, str]:
        return dict(self.root.nsmap)

    @property
    def front(self) -> etree._Element | None:
        return self.root.find("front")

    @property
    def body(self) -> etree._Element | None:
        return self.root.find("body")

    @property
    def back(self) -> etree._Element | None:
        return self.root.find("back")

    @property
    def title(self) -> str:
        title = self.root.find("front/article-meta/title-group/article-title")
        if title is None:
            return ""
        return "".join(title.itertext()).strip()

    def ref_elements(self) -> list[etree._Element]:
        """Return every back-matter <ref> in document order."""
        back = self.back
        if back is None:
            return []
        return list(back.iter("ref"))
