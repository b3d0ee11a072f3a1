"""Reference and citation domain objects."""

from dataclasses import dataclass, field


@dataclass
class Reference:
    """A single bibliographic entry from the back-matter reference list.

    Attributes:
        id: Stable identifier of the <ref> element
        publication_type: Citation type, "journal" when the source omits it
        label: Visible label text (e.g. "3."), if any
        text: Plain text of the citation
        number: Citation number in the source numbering
        first_cited: Position of the first in-text citation, None if uncited
    """

    id: str
    publication_type: str = "journal"
    label: str | None = None
    text: str = ""
    number: int | None = None
    first_cited: int | None = None

    @property
    def cited(self) -> bool:
        return self.first_cited is not None


@dataclass
class CitationMarker:
    """An in-text pointer to one or more references.

    Attributes:
        text: Marker text as it appeared in the body (e.g. "[3-5]")
        rids: Resolved reference identifiers, in citation order
        unresolved: Members of the marker that matched no reference
    """

    text: str
    rids: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return bool(self.rids) and not self.unresolved
