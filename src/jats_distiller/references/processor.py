"""Reference Processor for normalizing JATS back matter.

Runs a fixed sequence of passes over an article's reference list:

1. defaults: assign missing ref ids and publication types
2. split: break entries that bundle several citations into separate refs
3. reorder: sort refs by first in-text citation and renumber labels
4. brackets: turn bracketed in-text citations into <xref> elements
5. check: verify every citation resolves to a reference

Splitting runs before reordering so reordering sees the final entry set,
and before bracket processing so derived ids exist before they are cited.
Whenever split or reorder changes the reference numbering, numeric
bracket markers left as text are rewritten to the new numbers.
"""

import logging
import re
from collections.abc import Iterator

from lxml import etree

from jats_distiller.exceptions import UnresolvedCitationError
from schemas.article import ArticleDocument
from schemas.options import ConversionOptions
from schemas.reference import CitationMarker, Reference

from .citations import (
    expand_numeric,
    find_markers,
    format_numeric,
    label_mark,
    label_number,
    mentions,
    parse_author_year,
    renumber_label,
    split_citation_text,
)

logger = logging.getLogger(__name__)

CITATION_TAGS = ("mixed-citation", "element-citation")
SKIP_TAGS = {"xref", "ext-link", "uri", "label", "inline-formula", "disp-formula"}
DEFAULT_PUBLICATION_TYPE = "journal"
XREF_NUMBER = re.compile(r"\d+[a-z]?")


class _Report:
    """Diagnostics collected during one normalization pass."""

    def __init__(self, verbose: bool):
        self.verbose = verbose
        self.messages: list[str] = []
        self.changes = 0
        self.counts = {"defaults": 0, "split": 0, "moved": 0, "brackets": 0}
        self.unresolved: list[CitationMarker] = []

    def change(self, kind: str, detail: str | None = None) -> None:
        self.changes += 1
        self.counts[kind] = self.counts.get(kind, 0) + 1
        if detail:
            logger.debug(detail)
            if self.verbose:
                self.messages.append(f"[Detail] {detail}")

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.messages.append(f"[Warning] {message}")


class ReferenceProcessor:
    """Normalize the reference list and in-text citations of an article.

    The tree is modified in place. Running the processor twice with the
    same options changes nothing on the second pass.

    Attributes:
        options: Conversion options selecting the passes to run
    """

    def __init__(self, options: ConversionOptions | None = None):
        self.options = options or ConversionOptions()

    def normalize(self, article: ArticleDocument) -> tuple[ArticleDocument, list[str]]:
        """Normalize an article's references.

        Args:
            article: Article to normalize

        Returns:
            The normalized article and its diagnostic messages

        Raises:
            UnresolvedCitationError: If reference checking is enabled, the
                unresolved citation policy is "fatal", and a citation does
                not resolve
        """
        report = _Report(self.options.verbose_logging)

        references = self._apply_defaults(article, report)

        if self.options.split_references:
            references = self._split_references(article, references, report)

        if self.options.reorder_references:
            references = self._reorder_references(article, references, report)

        if self.options.process_brackets:
            self._process_brackets(article, references, report)

        if self.options.reference_check:
            self._check_references(article, references, report)

        counts = report.counts
        summary = (
            f"References: {len(references)}; defaults applied: {counts['defaults']}; "
            f"split: {counts['split']}; moved: {counts['moved']}; "
            f"bracket citations converted: {counts['brackets']}; "
            f"unresolved: {len(report.unresolved)}"
        )
        logger.info(summary)
        report.messages.append(f"[Info] {summary}")
        report.messages.append(f"[Info] Reference normalization: {report.changes} changes")

        if (
            report.unresolved
            and self.options.reference_check
            and self.options.unresolved_citations == "fatal"
        ):
            raise UnresolvedCitationError(
                f"{len(report.unresolved)} citations do not resolve to a reference",
                markers=report.unresolved,
            )

        return article, report.messages

    # ------------------------------------------------------------------
    # Step 1: defaults
    # ------------------------------------------------------------------

    def _apply_defaults(self, article: ArticleDocument, report: _Report) -> list[Reference]:
        """Assign missing ids and publication types.

        Returns:
            The references in list order, numbered as in the source
        """
        used_ids = {el.get("id") for el in article.root.iter() if el.get("id")}

        for position, ref in enumerate(article.ref_elements(), start=1):
            if not ref.get("id"):
                ref_id = _unique_id(f"ref-{position}", used_ids)
                ref.set("id", ref_id)
                report.change("defaults", f"Assigned id {ref_id} to reference {position}")

            for citation in ref.iterchildren(*CITATION_TAGS):
                if not citation.get("publication-type"):
                    citation.set("publication-type", DEFAULT_PUBLICATION_TYPE)
                    report.change(
                        "defaults",
                        f"Set publication-type=\"{DEFAULT_PUBLICATION_TYPE}\" on {ref.get('id')}",
                    )

        return _read_references(article)

    # ------------------------------------------------------------------
    # Step 2: split
    # ------------------------------------------------------------------

    def _split_references(
        self, article: ArticleDocument, references: list[Reference], report: _Report
    ) -> list[Reference]:
        used_ids = {el.get("id") for el in article.root.iter() if el.get("id")}
        by_id = {reference.id: reference for reference in references}
        replaced: dict[str, list[str]] = {}

        for ref in article.ref_elements():
            citations = ref.findall("mixed-citation")
            if len(citations) != 1:
                continue
            segments = split_citation_text("".join(citations[0].itertext()))
            if len(segments) < 2:
                continue

            reference = by_id[ref.get("id")]
            derived: list[etree._Element] = []
            for k, segment in enumerate(segments, start=1):
                new_ref = etree.Element("ref")
                new_ref.set("id", _unique_id(f"{reference.id}-{k}", used_ids))
                if reference.label:
                    etree.SubElement(new_ref, "label").text = _derived_label(reference.label, k)
                new_citation = etree.SubElement(new_ref, "mixed-citation")
                new_citation.set("publication-type", reference.publication_type)
                new_citation.text = segment
                derived.append(new_ref)

            derived[-1].tail = ref.tail
            for new_ref in derived:
                ref.addprevious(new_ref)
            ref.getparent().remove(ref)

            derived_ids = [r.get("id") for r in derived]
            replaced[reference.id] = derived_ids
            self._retarget_xrefs(article, reference.id, derived_ids)

            report.change(
                "split",
                f"Split reference {reference.id} into {len(derived_ids)} entries: "
                f"{', '.join(derived_ids)}",
            )

        if not replaced:
            return references
        updated = _read_references(article)
        self._rewrite_markers(article, _number_index(references, replaced), updated, report)
        return updated

    def _retarget_xrefs(
        self, article: ArticleDocument, old_id: str, new_ids: list[str]
    ) -> None:
        body = article.body
        if body is None:
            return
        for xref in body.iter("xref"):
            rids = xref.get("rid", "").split()
            if old_id in rids:
                at = rids.index(old_id)
                rids[at:at + 1] = new_ids
                xref.set("rid", " ".join(rids))

    # ------------------------------------------------------------------
    # Step 3: reorder
    # ------------------------------------------------------------------

    def _reorder_references(
        self, article: ArticleDocument, references: list[Reference], report: _Report
    ) -> list[Reference]:
        first_cited = self._first_citations(article, references)
        by_id = {reference.id: reference for reference in references}
        for reference in references:
            reference.first_cited = first_cited.get(reference.id)

        for ref_list in dict.fromkeys(ref.getparent() for ref in article.ref_elements()):
            refs = [child for child in ref_list if child.tag == "ref"]
            in_list = [by_id[ref.get("id")] for ref in refs]
            cited = sorted((r for r in in_list if r.cited), key=lambda r: r.first_cited)
            uncited = [r for r in in_list if not r.cited]
            order = [r.id for r in cited + uncited]
            if order == [r.id for r in in_list]:
                continue

            elements = {ref.get("id"): ref for ref in refs}
            anchor = ref_list.index(refs[0])
            for ref in refs:
                ref_list.remove(ref)
            for offset, ref_id in enumerate(order):
                ref_list.insert(anchor + offset, elements[ref_id])

            for old_position, reference in enumerate(in_list, start=1):
                new_position = order.index(reference.id) + 1
                if new_position != old_position:
                    report.change(
                        "moved",
                        f"Moved reference {reference.id} from position "
                        f"{old_position} to {new_position}",
                    )

        self._renumber(article, report)

        updated = _read_references(article)
        self._rewrite_markers(article, _number_index(references), updated, report)
        return updated

    def _first_citations(
        self, article: ArticleDocument, references: list[Reference]
    ) -> dict[str, int]:
        """Map each cited reference id to the position of its first citation."""
        ref_ids = {reference.id for reference in references}
        index = _number_index(references)
        first: dict[str, int] = {}
        body = article.body
        if body is None:
            return first

        position = 0
        for kind, node, attr in _citation_sites(body):
            if kind == "xref":
                rids = _bibr_rids(node, ref_ids)
            else:
                rids = []
                for match, marker_kind in find_markers(getattr(node, attr)):
                    marker = self._resolve(match, marker_kind, index, references)
                    rids.extend(marker.rids)
            for rid in rids:
                if rid in ref_ids and rid not in first:
                    first[rid] = position
                    position += 1
        return first

    def _renumber(self, article: ArticleDocument, report: _Report) -> None:
        """Renumber labels and numeric xref texts to match reference order."""
        positions = {ref.get("id"): n for n, ref in enumerate(article.ref_elements(), start=1)}

        for ref in article.ref_elements():
            label = ref.find("label")
            if label is None or label_number(label.text) is None:
                continue
            renumbered = renumber_label(label.text, positions[ref.get("id")])
            if renumbered != label.text:
                label.text = renumbered
                report.changes += 1

        body = article.body
        if body is None:
            return
        shown = _shown_numbers(article)
        for xref in body.iter("xref"):
            rids = xref.get("rid", "").split()
            if xref.get("ref-type") != "bibr" or len(rids) != 1 or len(xref):
                continue
            text = (xref.text or "").strip()
            if rids[0] in shown and XREF_NUMBER.fullmatch(text) and text != shown[rids[0]]:
                xref.text = shown[rids[0]]
                report.changes += 1

    def _rewrite_markers(
        self,
        article: ArticleDocument,
        old_index: dict[int, list[str]],
        updated: list[Reference],
        report: _Report,
    ) -> None:
        """Rewrite numeric bracket markers from the old to the new numbering.

        Numbers that match no reference are kept as written.
        """
        body = article.body
        if body is None:
            return
        new_numbers = {reference.id: reference.number for reference in updated}

        for kind, node, attr in list(_citation_sites(body)):
            if kind != "text":
                continue
            text = getattr(node, attr)
            pieces: list[str] = []
            cursor = 0
            for match, marker_kind in find_markers(text):
                if marker_kind != "numeric":
                    continue
                numbers = expand_numeric(match.group(1))
                mapped = _map_numbers(numbers, old_index, new_numbers)
                if mapped == numbers:
                    continue
                marker = f"[{format_numeric(mapped)}]"
                pieces.append(text[cursor:match.start()] + marker)
                cursor = match.end()
                report.change("renumbered", f"Renumbered citation {match.group(0)} to {marker}")
            if pieces:
                setattr(node, attr, "".join(pieces) + text[cursor:])

    # ------------------------------------------------------------------
    # Step 4: brackets
    # ------------------------------------------------------------------

    def _process_brackets(
        self, article: ArticleDocument, references: list[Reference], report: _Report
    ) -> None:
        body = article.body
        if body is None:
            return
        index = _number_index(references)
        shown = _shown_numbers(article)

        for kind, node, attr in list(_citation_sites(body)):
            if kind != "text":
                continue
            text = getattr(node, attr)
            prefix = ""
            nodes: list[etree._Element] = []
            cursor = 0

            for match, marker_kind in find_markers(text):
                marker = self._resolve(match, marker_kind, index, references)
                if not marker.resolved:
                    report.unresolved.append(marker)
                    report.warn(
                        f"Unresolved citation {marker.text}: "
                        f"{', '.join(marker.unresolved)}"
                    )
                    continue

                lead = text[cursor:match.start()] + "["
                if nodes:
                    nodes[-1].tail += lead
                else:
                    prefix += lead

                separator = ", "
                members = (
                    [m[0] for m in parse_author_year(match.group(1))]
                    if marker_kind == "author-year"
                    else None
                )
                for i, rid in enumerate(marker.rids):
                    xref = etree.Element("xref")
                    xref.set("ref-type", "bibr")
                    xref.set("rid", rid)
                    xref.text = members[i] if members else shown[rid]
                    xref.tail = separator
                    nodes.append(xref)
                nodes[-1].tail = "]"
                cursor = match.end()

                report.change(
                    "brackets",
                    f"Converted {marker.text} into {len(marker.rids)} citation(s): "
                    f"{', '.join(marker.rids)}",
                )

            if not nodes:
                continue
            nodes[-1].tail += text[cursor:]
            setattr(node, attr, prefix)
            if attr == "text":
                for offset, xref in enumerate(nodes):
                    node.insert(offset, xref)
            else:
                parent = node.getparent()
                at = parent.index(node) + 1
                for offset, xref in enumerate(nodes):
                    parent.insert(at + offset, xref)

    def _resolve(
        self,
        match,
        kind: str,
        index: dict[int, list[str]],
        references: list[Reference],
    ) -> CitationMarker:
        """Resolve a bracketed marker to reference ids."""
        marker = CitationMarker(text=match.group(0))

        if kind == "numeric":
            for number in expand_numeric(match.group(1)):
                ids = index.get(number)
                if not ids:
                    marker.unresolved.append(str(number))
                    continue
                marker.rids.extend(rid for rid in ids if rid not in marker.rids)
            return marker

        for member, surname, year in parse_author_year(match.group(1)):
            for reference in references:
                if mentions(reference.text, surname, year):
                    marker.rids.append(reference.id)
                    break
            else:
                marker.unresolved.append(member)
        return marker

    # ------------------------------------------------------------------
    # Step 5: check
    # ------------------------------------------------------------------

    def _check_references(
        self, article: ArticleDocument, references: list[Reference], report: _Report
    ) -> None:
        body = article.body
        if body is None:
            return
        ref_ids = {reference.id for reference in references}
        index = _number_index(references)

        for kind, node, attr in _citation_sites(body):
            if kind == "xref":
                if node.get("ref-type") != "bibr":
                    continue
                missing = [rid for rid in node.get("rid", "").split() if rid not in ref_ids]
                if missing or not node.get("rid"):
                    marker = CitationMarker(
                        text="".join(node.itertext()) or node.get("rid", ""),
                        unresolved=missing or ["(no rid)"],
                    )
                    report.unresolved.append(marker)
                    report.warn(
                        f"Citation {marker.text!r} points to unknown reference "
                        f"{', '.join(marker.unresolved)}"
                    )
            elif not self.options.process_brackets:
                for match, marker_kind in find_markers(getattr(node, attr)):
                    marker = self._resolve(match, marker_kind, index, references)
                    if not marker.resolved:
                        report.unresolved.append(marker)
                        report.warn(
                            f"Unresolved citation {marker.text}: "
                            f"{', '.join(marker.unresolved)}"
                        )

        if not report.unresolved:
            report.messages.append("[Info] All citations resolve to a reference")


def normalize_references(
    article: ArticleDocument, options: ConversionOptions | None = None
) -> tuple[ArticleDocument, list[str]]:
    """Normalize an article's references with the given options.

    Args:
        article: Article to normalize
        options: Conversion options

    Returns:
        The normalized article and its diagnostic messages
    """
    return ReferenceProcessor(options).normalize(article)


def _read_references(article: ArticleDocument) -> list[Reference]:
    """Read the reference list in list order.

    A reference is numbered by its label, or by its position when it has
    no numeric label.
    """
    references = []
    for position, ref in enumerate(article.ref_elements(), start=1):
        citations = list(ref.iterchildren(*CITATION_TAGS))
        label = ref.findtext("label")
        text = " ".join("".join(c.itertext()).strip() for c in citations)
        references.append(
            Reference(
                id=ref.get("id"),
                publication_type=(
                    citations[0].get("publication-type") if citations else None
                ) or DEFAULT_PUBLICATION_TYPE,
                label=label,
                text=text or "".join(ref.itertext()).strip(),
                number=label_number(label) or position,
            )
        )
    return references


def _number_index(
    references: list[Reference], replaced: dict[str, list[str]] | None = None
) -> dict[int, list[str]]:
    """Map citation numbers to reference ids.

    Args:
        references: References to index
        replaced: Ids of split references mapped to the ids of their parts
    """
    index: dict[int, list[str]] = {}
    for reference in references:
        ids = replaced.get(reference.id, [reference.id]) if replaced else [reference.id]
        index.setdefault(reference.number, []).extend(ids)
    return index


def _map_numbers(
    numbers: list[int], old_index: dict[int, list[str]], new_numbers: dict[str, int]
) -> list[int]:
    mapped: list[int] = []
    for number in numbers:
        ids = old_index.get(number) or [None]
        for rid in ids:
            new = new_numbers.get(rid, number)
            if new not in mapped:
                mapped.append(new)
    return mapped


def _shown_numbers(article: ArticleDocument) -> dict[str, str]:
    """Map ref ids to the number a reader sees: the label's, else the position."""
    return {
        ref.get("id"): label_mark(ref.findtext("label")) or str(position)
        for position, ref in enumerate(article.ref_elements(), start=1)
    }


def _citation_sites(
    element: etree._Element, skip: bool = False
) -> Iterator[tuple[str, etree._Element, str | None]]:
    """Yield citation sites under element in document order.

    Sites are ("xref", element, None) for cross-references and
    ("text", owner, "text" | "tail") for text nodes outside elements
    whose content is never a citation.
    """
    if element.tag == "xref":
        yield "xref", element, None
        return

    skip_here = skip or element.tag in SKIP_TAGS
    if element.text and not skip_here:
        yield "text", element, "text"
    for child in element:
        if isinstance(child.tag, str):
            yield from _citation_sites(child, skip_here)
        if child.tail and not skip_here:
            yield "text", child, "tail"


def _bibr_rids(xref: etree._Element, ref_ids: set[str]) -> list[str]:
    rids = xref.get("rid", "").split()
    if xref.get("ref-type") == "bibr":
        return rids
    if xref.get("ref-type") is None:
        return [rid for rid in rids if rid in ref_ids]
    return []


def _unique_id(candidate: str, used_ids: set[str]) -> str:
    unique = candidate
    suffix = 1
    while unique in used_ids:
        suffix += 1
        unique = f"{candidate}-{suffix}"
    used_ids.add(unique)
    return unique


def _derived_label(label: str, k: int) -> str:
    """Label of the k-th entry split from a labelled reference ("2" -> "2a")."""
    letter = chr(ord("a") + (k - 1) % 26)
    number = label_number(label)
    return re.sub(r"\d+[a-z]?", f"{number}{letter}", label, count=1)
