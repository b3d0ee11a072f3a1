"""Pytest fixtures for JATS Distiller tests."""

import io
import struct
import zlib

import pytest
from docx import Document
from docx.shared import Inches

from schemas import ConversionOptions, JournalMetadata

XLINK = "http://www.w3.org/1999/xlink"


def make_png(rgb: bytes = b"\xff\x00\x00") -> bytes:
    """Return a valid 1x1 RGB PNG image of the given colour."""

    def chunk(kind: bytes, data: bytes) -> bytes:
        body = kind + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body))

    header = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)
    pixels = zlib.compress(b"\x00" + rgb)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", pixels)
        + chunk(b"IEND", b"")
    )


def make_article(body: str = "", back: str = "", front: str = "", attrs: str = "") -> bytes:
    """Build a near-JATS article from body and back fragments."""
    return (
        f'<article xmlns:xlink="{XLINK}" xmlns:mml="http://www.w3.org/1998/Math/MathML" {attrs}>'
        f"<front>{front}</front>"
        f"<body>{body}</body>"
        f"<back>{back}</back>"
        "</article>"
    ).encode("utf-8")


@pytest.fixture
def png_bytes():
    """A minimal PNG image."""
    return make_png()


@pytest.fixture
def sample_jats():
    """Near-JATS article with a redundant xlink alias and incomplete refs."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<article xmlns:xlink="{XLINK}" xmlns:xl="{XLINK}" '
        'xmlns:mml="http://www.w3.org/1998/Math/MathML" article-type="review-article">'
        "<front><article-meta><title-group>"
        "<article-title>Tidal <italic>patterns</italic></article-title>"
        "</title-group><abstract><p>We measured tides.</p></abstract></article-meta></front>"
        "<body><sec id=\"s1\"><title>Introduction</title>"
        "<p>Earlier work <xref ref-type=\"bibr\" rid=\"r1\">1</xref> covers this.</p>"
        '<!-- reviewer note -->'
        '<fig id="f1"><graphic xl:href="tides.png"/></fig>'
        "</sec></body>"
        "<back><ref-list>"
        '<ref id="r1"><label>1</label><mixed-citation>Smith J. Tides. 2010.</mixed-citation></ref>'
        '<ref><label>2</label><element-citation publication-type="book">'
        "<source>Waves</source></element-citation></ref>"
        "</ref-list></back>"
        "</article>"
    ).encode("utf-8")


@pytest.fixture
def bracket_jats():
    """Article citing references out of list order with bracket markers."""
    return make_article(
        body=(
            "<sec><title>Results</title>"
            "<p>First shown in [3], then confirmed [1, 2].</p>"
            "<p>See also [3-4].</p>"
            "</sec>"
        ),
        back=(
            "<ref-list>"
            '<ref id="a"><label>1</label><mixed-citation>Alpha A. One. 2001.</mixed-citation></ref>'
            '<ref id="b"><label>2</label><mixed-citation>Beta B. Two. 2002.</mixed-citation></ref>'
            '<ref id="c"><label>3</label><mixed-citation>Gamma C. Three. 2003.</mixed-citation></ref>'
            '<ref id="d"><label>4</label><mixed-citation>Delta D. Four. 2004.</mixed-citation></ref>'
            '<ref id="e"><label>5</label><mixed-citation>Eps E. Five. 2005.</mixed-citation></ref>'
            "</ref-list>"
        ),
    )


@pytest.fixture
def journal_metadata():
    """Journal metadata with two titles, both ISSNs and a publisher."""
    return JournalMetadata(
        journal_id="tides",
        primary_locale="en_US",
        titles={"en_US": "Journal of Tides", "fr_CA": "Revue des marées"},
        print_issn="1234-5678",
        online_issn="8765-4321",
        publisher="Ocean Press",
    )


@pytest.fixture
def all_options():
    """Options with every reference pass enabled."""
    return ConversionOptions(
        split_references=True,
        reorder_references=True,
        process_brackets=True,
        reference_check=True,
        verbose_logging=True,
    )


@pytest.fixture
def docx_bytes(png_bytes):
    """A DOCX manuscript with five body paragraphs and two images."""
    document = Document()
    document.add_paragraph("Measuring Tides", style="Title")
    document.add_heading("Abstract", level=1)
    document.add_paragraph("Tides were measured at two sites.")
    document.add_heading("Introduction", level=1)

    paragraph = document.add_paragraph("Tides are ")
    paragraph.add_run("periodic").bold = True
    paragraph.add_run(" and ")
    paragraph.add_run("predictable").italic = True
    paragraph.add_run(" [1].")
    document.add_paragraph("Earlier studies disagree [2].")
    document.add_picture(io.BytesIO(png_bytes), width=Inches(1))
    document.add_paragraph("Figure 1. Site A.", style="Caption")

    document.add_heading("Methods", level=1)
    document.add_paragraph("We used gauges.")
    document.add_heading("Sites", level=2)
    document.add_paragraph("Two coastal sites.")
    document.add_paragraph("Site A", style="List Bullet")
    document.add_paragraph("Site B", style="List Bullet")
    document.add_picture(io.BytesIO(make_png(b"\x00\x00\xff")), width=Inches(1))
    document.add_paragraph("Both sites were visited monthly.")

    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Site"
    table.cell(0, 1).text = "Range"
    table.cell(1, 0).text = "A"
    table.cell(1, 1).text = "2 m"

    document.add_heading("References", level=1)
    document.add_paragraph("1. Smith J. Tides. J Ocean. 2010.")
    document.add_paragraph("2. Jones K. Waves. J Ocean. 2012.")

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()
