"""DOCX Converter for turning Word manuscripts into JATS articles.

Walks the document body of a DOCX package in element order and maps Word
structures onto JATS:

- "Title" paragraph            -> article-title
- "Heading N" paragraphs       -> nested sec/title
- "Abstract" heading or style  -> abstract paragraphs
- "References" heading         -> back/ref-list entries
- numbered/bulleted paragraphs -> list/list-item
- tables                       -> table-wrap/table
- inline and table-cell images -> fig/graphic
- bold/italic/super/subscript  -> bold/italic/sup/sub

Any other formatting is dropped.
"""

import io
import logging
import posixpath
import re
import zipfile

from docx import Document
from docx.document import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.hyperlink import Hyperlink
from docx.text.paragraph import Paragraph
from docx.text.run import Run
from lxml import etree

from jats_distiller.exceptions import MalformedSourceError
from schemas.article import XLINK_NS, ArticleDocument
from schemas.metadata import JournalMetadata

from .converter import DEFAULT_ARTICLE_TYPE, Converter
from .front_matter import build_front

logger = logging.getLogger(__name__)

ABSTRACT_HEADINGS = {"abstract", "summary"}
REFERENCE_HEADINGS = {
    "references",
    "reference list",
    "bibliography",
    "literature cited",
    "works cited",
}
LEADING_NUMBER = re.compile(r"^\s*\[?(\d+)[\].)]?\s+")
LOSSY_NOTICE = (
    "[Info] DOCX conversion is lossy: styles and formatting not representable "
    "in JATS were dropped"
)


class _Walk:
    """Mutable state of one pass over a DOCX body."""

    def __init__(self, body: etree._Element):
        self.body = body
        self.sections: list[tuple[int, etree._Element]] = []
        self.mode = "body"
        self.title: Paragraph | None = None
        self.abstract: list[Paragraph] = []
        self.references: list[Paragraph] = []
        self.current_list: etree._Element | None = None
        self.last_fig: etree._Element | None = None
        self.figures = 0
        self.tables = 0

    @property
    def container(self) -> etree._Element:
        if self.sections:
            return self.sections[-1][1]
        return self.body


class DOCXConverter(Converter):
    """Convert a DOCX package into a JATS article.

    The DOCXConverter:
    1. Opens the package with python-docx
    2. Walks body paragraphs and tables in document order
    3. Builds body sections, lists, tables and figures
    4. Collects title, abstract and reference paragraphs
    5. Attaches front matter and a back-matter reference list
    """

    def convert(
        self, source: bytes, metadata: JournalMetadata | None = None
    ) -> ArticleDocument:
        """Convert DOCX bytes into a JATS article.

        Args:
            source: Raw DOCX bytes
            metadata: Optional journal metadata for the front matter

        Returns:
            ArticleDocument for the converted manuscript

        Raises:
            MalformedSourceError: If the bytes are not a readable DOCX package
        """
        document = self._open(source)

        root = self._new_article()
        root.set("article-type", DEFAULT_ARTICLE_TYPE)
        root.append(build_front(metadata))
        body = etree.SubElement(root, "body")

        walk = _Walk(body)
        for child in document.element.body.iterchildren():
            if child.tag == qn("w:p"):
                self._handle_paragraph(Paragraph(child, document), document, walk)
            elif child.tag == qn("w:tbl"):
                self._handle_table(Table(child, document), document, walk)

        self._fill_front(root, document, walk)
        if walk.references:
            self._build_back(root, walk.references)

        logger.info(
            f"Converted DOCX with {walk.figures} figures, {walk.tables} tables "
            f"and {len(walk.references)} references"
        )
        return ArticleDocument(root=root, source_format="docx", diagnostics=[LOSSY_NOTICE])

    def _open(self, source: bytes) -> DocxDocument:
        try:
            return Document(io.BytesIO(source))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
            raise MalformedSourceError(f"Source is not a readable DOCX package: {e}") from e

    def _handle_paragraph(
        self, paragraph: Paragraph, document: DocxDocument, walk: _Walk
    ) -> None:
        style = self._style_name(paragraph)
        text = paragraph.text.strip()

        if style == "title":
            walk.title = paragraph
            return

        if style.startswith("heading"):
            self._handle_heading(paragraph, style, text, walk)
            return

        if style == "abstract" or walk.mode == "abstract":
            if text:
                walk.abstract.append(paragraph)
            return

        if walk.mode == "references":
            if text:
                walk.references.append(paragraph)
            return

        if style == "caption" and walk.last_fig is not None:
            if walk.last_fig.find("caption") is None and text:
                caption = etree.Element("caption")
                self._append_inline(etree.SubElement(caption, "p"), paragraph)
                walk.last_fig.insert(0, caption)
            return

        for rid in paragraph._p.xpath(".//a:blip/@r:embed"):
            self._add_figure(rid, document, walk)

        if not text:
            return

        if self._is_list_item(paragraph, style):
            if walk.current_list is None:
                walk.current_list = etree.SubElement(walk.container, "list")
                walk.current_list.set(
                    "list-type", "bullet" if "bullet" in style else "order"
                )
            item = etree.SubElement(walk.current_list, "list-item")
            self._append_inline(etree.SubElement(item, "p"), paragraph)
            return

        walk.current_list = None
        self._append_inline(etree.SubElement(walk.container, "p"), paragraph)

    def _handle_heading(
        self, paragraph: Paragraph, style: str, text: str, walk: _Walk
    ) -> None:
        walk.current_list = None
        walk.last_fig = None
        heading = text.lower().rstrip(":")
        if heading in ABSTRACT_HEADINGS:
            walk.mode = "abstract"
            return
        if heading in REFERENCE_HEADINGS:
            walk.mode = "references"
            return
        if not text:
            return

        walk.mode = "body"
        digits = re.search(r"\d+", style)
        level = int(digits.group()) if digits else 1

        while walk.sections and walk.sections[-1][0] >= level:
            walk.sections.pop()
        sec = etree.SubElement(walk.container, "sec")
        sec.set("id", f"sec-{sum(1 for _ in walk.body.iter('sec'))}")
        self._append_inline(etree.SubElement(sec, "title"), paragraph)
        walk.sections.append((level, sec))

    def _handle_table(self, table: Table, document: DocxDocument, walk: _Walk) -> None:
        if walk.mode != "body":
            return
        walk.current_list = None
        walk.tables += 1

        table_wrap = etree.SubElement(walk.container, "table-wrap")
        table_wrap.set("id", f"tab-{walk.tables}")
        tbody = etree.SubElement(etree.SubElement(table_wrap, "table"), "tbody")
        for row in table.rows:
            tr = etree.SubElement(tbody, "tr")
            for cell in row.cells:
                td = etree.SubElement(tr, "td")
                td.text = " ".join(
                    p.text.strip() for p in cell.paragraphs if p.text.strip()
                )

        # Pictures in cells follow the table as figures of their own
        for rid in table._tbl.xpath(".//a:blip/@r:embed"):
            self._add_figure(rid, document, walk)

    def _add_figure(self, rid: str, document: DocxDocument, walk: _Walk) -> None:
        part = document.part.related_parts.get(rid)
        if part is None:
            logger.warning(f"Image relationship {rid} has no target part, skipping")
            return

        walk.current_list = None
        walk.figures += 1
        fig = etree.SubElement(walk.container, "fig")
        fig.set("id", f"fig-{walk.figures}")
        graphic = etree.SubElement(fig, "graphic")
        graphic.set(f"{{{XLINK_NS}}}href", posixpath.basename(str(part.partname)))
        walk.last_fig = fig

    def _fill_front(
        self, root: etree._Element, document: DocxDocument, walk: _Walk
    ) -> None:
        article_meta = root.find("front/article-meta")

        article_title = article_meta.find("title-group/article-title")
        if walk.title is not None:
            self._append_inline(article_title, walk.title)
        elif document.core_properties.title:
            article_title.text = document.core_properties.title

        abstract = article_meta.find("abstract")
        for paragraph in walk.abstract:
            self._append_inline(etree.SubElement(abstract, "p"), paragraph)

    def _build_back(self, root: etree._Element, references: list[Paragraph]) -> None:
        ref_list = etree.SubElement(etree.SubElement(root, "back"), "ref-list")
        etree.SubElement(ref_list, "title").text = "References"

        for position, paragraph in enumerate(references, start=1):
            ref = etree.SubElement(ref_list, "ref")
            ref.set("id", f"ref-{position}")
            text = paragraph.text.strip()
            if match := LEADING_NUMBER.match(text):
                etree.SubElement(ref, "label").text = match.group(1)
                text = text[match.end():]
            citation = etree.SubElement(ref, "mixed-citation")
            citation.text = text

    def _append_inline(self, target: etree._Element, paragraph: Paragraph) -> None:
        """Append the runs of a paragraph to target as JATS inline content."""
        for item in paragraph.iter_inner_content():
            if isinstance(item, Hyperlink):
                if item.address:
                    link = etree.SubElement(target, "ext-link")
                    link.set("ext-link-type", "uri")
                    link.set(f"{{{XLINK_NS}}}href", item.address)
                    for run in item.runs:
                        self._append_run(link, run)
                else:
                    for run in item.runs:
                        self._append_run(target, run)
            elif isinstance(item, Run):
                self._append_run(target, item)

    def _append_run(self, target: etree._Element, run: Run) -> None:
        text = run.text
        if not text:
            return

        tags = []
        if run.bold:
            tags.append("bold")
        if run.italic:
            tags.append("italic")
        if run.font.superscript:
            tags.append("sup")
        elif run.font.subscript:
            tags.append("sub")

        if not tags:
            _append_text(target, text)
            return

        inner = etree.SubElement(target, tags[0])
        for tag in tags[1:]:
            inner = etree.SubElement(inner, tag)
        inner.text = text

    def _style_name(self, paragraph: Paragraph) -> str:
        style = paragraph.style
        if style is None or not style.name:
            return ""
        return style.name.lower()

    def _is_list_item(self, paragraph: Paragraph, style: str) -> bool:
        ppr = paragraph._p.pPr
        if ppr is not None and ppr.numPr is not None:
            return True
        return style.startswith("list")


def _append_text(element: etree._Element, text: str) -> None:
    """Append text after the last child of element, or to its text."""
    if len(element):
        last = element[-1]
        last.tail = (last.tail or "") + text
    else:
        element.text = (element.text or "") + text
