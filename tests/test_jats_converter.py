"""Tests for the JATS Converter."""

import pytest
from lxml import etree

from jats_distiller.converters import JATSConverter, convert_to_article, serialize_article
from jats_distiller.converters.converter import JATS_DOCTYPE
from jats_distiller.exceptions import MalformedSourceError, UnsupportedFormatError
from schemas import ConversionOptions

from conftest import XLINK, make_article

XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"


def _reparse(article) -> etree._Element:
    return etree.fromstring(serialize_article(article))


class TestNamespaces:
    """Tests for namespace handling on the rebuilt root."""

    def test_xlink_declared_exactly_once(self, sample_jats):
        """The serialized article declares the xlink namespace once."""
        article = JATSConverter().convert(sample_jats)

        xml = serialize_article(article).decode("utf-8")

        assert xml.count(f'"{XLINK}"') == 1
        assert 'xmlns:xlink="http://www.w3.org/1999/xlink"' in xml

    def test_xlink_alias_prefix_dropped(self, sample_jats):
        """A second prefix bound to the xlink URI is not carried over."""
        article = JATSConverter().convert(sample_jats)

        assert "xl" not in article.root.nsmap
        assert article.root.nsmap["xlink"] == XLINK

    def test_aliased_hrefs_rebound_to_xlink(self, sample_jats):
        """Attributes using an xlink alias are written with the xlink prefix."""
        article = JATSConverter().convert(sample_jats)

        xml = serialize_article(article).decode("utf-8")

        assert 'xlink:href="tides.png"' in xml
        assert "xl:href" not in xml

    def test_other_namespaces_copied(self, sample_jats):
        """Prefixed declarations other than xlink are kept."""
        article = JATSConverter().convert(sample_jats)

        assert article.root.nsmap["mml"] == "http://www.w3.org/1998/Math/MathML"

    def test_nested_xlink_declarations_not_repeated(self):
        """xlink declared again inside the body is not redeclared in output."""
        source = make_article(
            body=f'<p xmlns:xlink="{XLINK}"><ext-link xlink:href="http://x.org">x</ext-link></p>'
        )

        xml = serialize_article(JATSConverter().convert(source)).decode("utf-8")

        assert xml.count(f'"{XLINK}"') == 1

    def test_default_namespace_dropped_with_warning(self):
        """A default namespace on the source root is reported, not copied."""
        source = b'<article xmlns="http://example.org/ns"><body/></article>'

        article = JATSConverter().convert(source)

        assert None not in article.root.nsmap
        assert any("Default namespace" in d for d in article.diagnostics)

    def test_default_namespace_content_kept(self):
        """Front, body and back under a default namespace are converted."""
        source = (
            b'<article xmlns="http://jats.nlm.nih.gov/ns" '
            b'xmlns:xlink="http://www.w3.org/1999/xlink">'
            b"<front><article-meta><title-group><article-title>Tides</article-title>"
            b"</title-group></article-meta></front>"
            b'<body><p>Text</p><fig id="f1"><graphic xlink:href="a.png"/></fig></body>'
            b'<back><ref-list><ref id="r1"><mixed-citation>A. 2001.</mixed-citation></ref>'
            b"</ref-list></back></article>"
        )

        article = JATSConverter().convert(source)

        assert article.title == "Tides"
        assert article.body.findtext("p") == "Text"
        assert [r.get("id") for r in article.ref_elements()] == ["r1"]
        xml = serialize_article(article).decode("utf-8")
        assert "http://jats.nlm.nih.gov/ns" not in xml
        assert _reparse(article).find("body/fig/graphic").get(f"{{{XLINK}}}href") == "a.png"

    def test_other_default_namespace_inside_body_kept(self):
        """A default namespace declared below the root is left alone."""
        source = make_article(
            body='<p><math xmlns="http://www.w3.org/1998/Math/MathML"><mi>x</mi></math></p>'
        )

        article = JATSConverter().convert(source)

        assert article.body.find("p/{http://www.w3.org/1998/Math/MathML}math") is not None


class TestArticleType:
    """Tests for article-type handling."""

    def test_article_type_forced(self, sample_jats):
        """The article-type becomes research-article."""
        article = JATSConverter().convert(sample_jats)

        assert article.article_type == "research-article"

    def test_overridden_article_type_reported(self, sample_jats):
        """Replacing a different article-type produces a warning."""
        article = JATSConverter().convert(sample_jats)

        assert any("review-article" in d for d in article.diagnostics)

    def test_article_type_preserved_when_requested(self, sample_jats):
        """preserve_article_type keeps the source value."""
        article = JATSConverter(preserve_article_type=True).convert(sample_jats)

        assert article.article_type == "review-article"
        assert not article.diagnostics

    def test_missing_article_type_set_silently(self):
        """A source without article-type gets the default without warnings."""
        article = JATSConverter().convert(make_article(body="<p>Text</p>"))

        assert article.article_type == "research-article"
        assert article.diagnostics == []


class TestFrontMatter:
    """Tests for the generated front-matter skeleton."""

    def test_skeleton_without_metadata(self):
        """journal-meta, journal-id and journal-title-group exist but are empty."""
        article = JATSConverter().convert(make_article(body="<p>Text</p>"))

        journal_meta = article.root.find("front/journal-meta")
        assert journal_meta is not None
        journal_id = journal_meta.find("journal-id")
        assert journal_id.get("journal-id-type") == "ojs"
        assert not journal_id.text
        assert len(journal_meta.find("journal-title-group")) == 0
        assert journal_meta.find("issn") is None
        assert journal_meta.find("publisher") is None

    def test_skeleton_has_title_and_abstract(self):
        """article-meta carries an article-title and an abstract."""
        article = JATSConverter().convert(make_article(body="<p>Text</p>"))

        assert article.root.find("front/article-meta/title-group/article-title") is not None
        assert article.root.find("front/article-meta/abstract") is not None

    def test_front_is_first_child(self, sample_jats):
        """front precedes body and back."""
        article = JATSConverter().convert(sample_jats)

        assert [child.tag for child in article.root] == ["front", "body", "back"]

    def test_metadata_titles_and_languages(self, sample_jats, journal_metadata):
        """The primary title and translations carry two-letter languages."""
        article = JATSConverter().convert(sample_jats, journal_metadata)

        group = article.root.find("front/journal-meta/journal-title-group")
        title = group.find("journal-title")
        assert title.text == "Journal of Tides"
        assert title.get(XML_LANG) == "en"
        trans = group.find("trans-title-group")
        assert trans.get(XML_LANG) == "fr"
        assert trans.findtext("trans-title") == "Revue des marées"

    def test_metadata_issn_and_publisher(self, sample_jats, journal_metadata):
        """Print and online ISSNs and the publisher are written."""
        article = JATSConverter().convert(sample_jats, journal_metadata)

        journal_meta = article.root.find("front/journal-meta")
        issns = {i.get("pub-type"): i.text for i in journal_meta.findall("issn")}
        assert issns == {"ppub": "1234-5678", "epub": "8765-4321"}
        assert journal_meta.findtext("publisher/publisher-name") == "Ocean Press"
        assert journal_meta.findtext("journal-id") == "tides"

    def test_source_title_and_abstract_carried(self, sample_jats):
        """The source title and abstract fill the skeleton."""
        article = JATSConverter().convert(sample_jats)

        assert article.title == "Tidal patterns"
        title = article.root.find("front/article-meta/title-group/article-title")
        assert title.find("italic").text == "patterns"
        assert article.root.findtext("front/article-meta/abstract/p") == "We measured tides."


class TestBodyAndBack:
    """Tests for copying body and back matter."""

    def test_body_and_back_copied(self, sample_jats):
        """Body sections and references are present in the output."""
        article = JATSConverter().convert(sample_jats)

        assert article.body.find("sec/title").text == "Introduction"
        assert len(article.ref_elements()) == 2

    def test_comments_preserved(self, sample_jats):
        """Comments inside the body survive the copy."""
        xml = serialize_article(JATSConverter().convert(sample_jats)).decode("utf-8")

        assert "<!-- reviewer note -->" in xml

    def test_non_article_root_reported(self):
        """A root that is not <article> yields a warning and no body."""
        article = JATSConverter().convert(b"<book><body><p>x</p></body></book>")

        assert any("expected <article>" in d for d in article.diagnostics)


class TestParsingErrors:
    """Tests for malformed input."""

    def test_not_xml_raises(self):
        """Non-XML bytes raise MalformedSourceError."""
        with pytest.raises(MalformedSourceError):
            JATSConverter().convert(b"this is not xml")

    def test_truncated_xml_raises(self):
        """Unclosed elements raise MalformedSourceError."""
        with pytest.raises(MalformedSourceError):
            JATSConverter().convert(b"<article><body>")

    def test_external_entities_not_resolved(self, tmp_path):
        """External entities are not expanded into the output."""
        secret = tmp_path / "secret.txt"
        secret.write_text("TOP SECRET")
        source = (
            f'<!DOCTYPE article [<!ENTITY x SYSTEM "file://{secret}">]>'
            "<article><body><p>&x;</p></body></article>"
        ).encode("utf-8")

        article = JATSConverter().convert(source)

        assert b"TOP SECRET" not in serialize_article(article)


class TestSerialization:
    """Tests for canonical JATS emission."""

    def test_declaration_and_doctype(self, sample_jats):
        """Output starts with the XML declaration and carries the JATS DOCTYPE."""
        xml = serialize_article(JATSConverter().convert(sample_jats))

        assert xml.startswith(b"<?xml version='1.0' encoding='UTF-8'?>")
        assert JATS_DOCTYPE.encode("utf-8") in xml

    def test_output_reparses(self, sample_jats):
        """Serialized output is well-formed."""
        root = _reparse(JATSConverter().convert(sample_jats))

        assert root.tag == "article"


class TestFactory:
    """Tests for converter selection."""

    def test_detects_jats(self, sample_jats):
        """XML bytes are converted without an explicit format."""
        article = convert_to_article(sample_jats, None)

        assert article.source_format == "jats_xml"

    def test_options_reach_converter(self, sample_jats):
        """preserve_article_type is honoured through the factory."""
        options = ConversionOptions(preserve_article_type=True)

        article = convert_to_article(sample_jats, "jats_xml", options=options)

        assert article.article_type == "review-article"

    def test_unknown_format_raises(self, sample_jats):
        """An unknown format name raises UnsupportedFormatError."""
        with pytest.raises(UnsupportedFormatError):
            convert_to_article(sample_jats, "pdf")

    def test_undetectable_bytes_raise(self):
        """Bytes that look like neither format raise UnsupportedFormatError."""
        with pytest.raises(UnsupportedFormatError):
            convert_to_article(b"%PDF-1.4", None)
