"""Front-matter scaffolding for JATS articles.

Builds the <front> skeleton every converted article carries:

    front/
    ├── journal-meta/
    │   ├── journal-id
    │   ├── journal-title-group/ (journal-title, trans-title-group*)
    │   ├── issn[@pub-type=ppub]   (only when known)
    │   ├── issn[@pub-type=epub]   (only when known)
    │   └── publisher              (only when known)
    └── article-meta/
        ├── title-group/article-title
        └── abstract
"""

from lxml import etree

from schemas.metadata import JournalMetadata

XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"


def build_front(metadata: JournalMetadata | None = None) -> etree._Element:
    """Build a detached <front> element.

    Without metadata the journal-meta, journal-id and journal-title-group
    elements are still created, but left empty.

    Args:
        metadata: Optional journal metadata

    Returns:
        A <front> element ready to be attached to an <article>
    """
    metadata = metadata or JournalMetadata()

    front = etree.Element("front")
    front.append(_build_journal_meta(metadata))

    article_meta = etree.SubElement(front, "article-meta")
    title_group = etree.SubElement(article_meta, "title-group")
    etree.SubElement(title_group, "article-title")
    etree.SubElement(article_meta, "abstract")

    return front


def _build_journal_meta(metadata: JournalMetadata) -> etree._Element:
    journal_meta = etree.Element("journal-meta")

    journal_id = etree.SubElement(journal_meta, "journal-id")
    journal_id.set("journal-id-type", "ojs")
    if metadata.journal_id:
        journal_id.text = metadata.journal_id

    title_group = etree.SubElement(journal_meta, "journal-title-group")
    if metadata.primary_title:
        journal_title = etree.SubElement(title_group, "journal-title")
        journal_title.set(XML_LANG, _language(metadata.primary_locale))
        journal_title.text = metadata.primary_title

        for locale, title in metadata.translated_titles.items():
            trans_group = etree.SubElement(title_group, "trans-title-group")
            trans_group.set(XML_LANG, _language(locale))
            trans_title = etree.SubElement(trans_group, "trans-title")
            trans_title.text = title

    if metadata.print_issn:
        issn = etree.SubElement(journal_meta, "issn")
        issn.set("pub-type", "ppub")
        issn.text = metadata.print_issn

    if metadata.online_issn:
        issn = etree.SubElement(journal_meta, "issn")
        issn.set("pub-type", "epub")
        issn.text = metadata.online_issn

    if metadata.publisher:
        publisher = etree.SubElement(journal_meta, "publisher")
        publisher_name = etree.SubElement(publisher, "publisher-name")
        publisher_name.text = metadata.publisher

    return journal_meta


def _language(locale: str) -> str:
    """Reduce a locale like "fr_CA" to its two-letter language code."""
    return locale[:2]
