"""Citation text helpers used by the reference processor.

These functions work on plain strings only; tree handling lives in
processor.py.
"""

import re

NUMERIC_MEMBER = r"\d+(?:\s*[-–]\s*\d+)?"
NUMERIC_GROUP = re.compile(
    rf"\[(\s*{NUMERIC_MEMBER}(?:\s*[,;]\s*{NUMERIC_MEMBER})*\s*)\]"
)
AUTHOR_YEAR_MEMBER = r"[A-Z][^\[\];\d]*?,?\s*\d{4}[a-z]?"
AUTHOR_YEAR_GROUP = re.compile(
    rf"\[(\s*{AUTHOR_YEAR_MEMBER}(?:\s*;\s*{AUTHOR_YEAR_MEMBER})*\s*)\]"
)
AUTHOR_YEAR = re.compile(
    r"^(?P<surname>[A-Z][\w'\-]+)"
    r"(?:\s+(?:et al\.?|and|&)(?:\s+[A-Z][\w'\-]+)?)?"
    r",?\s+(?P<year>\d{4}[a-z]?)$"
)
YEAR = re.compile(r"\b(?:1[5-9]|20)\d{2}[a-z]?\b")
SEGMENT_DELIMITER = re.compile(r"\s*;\s*|\s*\n\s*")
MAX_RANGE = 100


def expand_numeric(group: str) -> list[int]:
    """Expand a numeric citation group into individual numbers.

    Args:
        group: Content of a bracketed group, without the brackets

    Returns:
        Citation numbers in order, ranges expanded

    Examples:
        >>> expand_numeric("12,14-16")
        [12, 14, 15, 16]
        >>> expand_numeric("3–5")
        [3, 4, 5]
    """
    numbers: list[int] = []
    for member in re.split(r"\s*[,;]\s*", group.strip()):
        if not member:
            continue
        bounds = re.split(r"\s*[-–]\s*", member)
        start = int(bounds[0])
        end = int(bounds[-1])
        if end >= start and end - start <= MAX_RANGE:
            numbers.extend(range(start, end + 1))
        else:
            numbers.extend([start, end])
    return numbers


def parse_author_year(group: str) -> list[tuple[str, str, str]]:
    """Parse an author-year citation group.

    Args:
        group: Content of a bracketed group, without the brackets

    Returns:
        List of (member text, surname, year) tuples; empty if any member
        is not an author-year citation

    Examples:
        >>> parse_author_year("Smith et al., 2010; Jones 2012")
        [('Smith et al., 2010', 'Smith', '2010'), ('Jones 2012', 'Jones', '2012')]
    """
    members = []
    for member in group.split(";"):
        member = member.strip()
        match = AUTHOR_YEAR.match(member)
        if not match:
            return []
        members.append((member, match.group("surname"), match.group("year")))
    return members


def find_markers(text: str) -> list[tuple[re.Match, str]]:
    """Find bracketed citation markers in a text.

    Args:
        text: Body text

    Returns:
        Non-overlapping (match, kind) pairs in text order, where kind is
        "numeric" or "author-year"
    """
    found = [(m, "numeric") for m in NUMERIC_GROUP.finditer(text)]
    found.extend(
        (m, "author-year")
        for m in AUTHOR_YEAR_GROUP.finditer(text)
        if parse_author_year(m.group(1))
    )
    found.sort(key=lambda pair: pair[0].start())

    markers = []
    last_end = -1
    for match, kind in found:
        if match.start() >= last_end:
            markers.append((match, kind))
            last_end = match.end()
    return markers


def split_citation_text(text: str) -> list[str]:
    """Split a reference text that bundles several citations.

    A text is split on semicolons and line breaks only when every
    resulting segment looks like a citation of its own: it starts with an
    upper-case author token and contains a publication year.

    Args:
        text: Plain text of a mixed citation

    Returns:
        The citation segments, or a single-item list if the text is one
        citation

    Examples:
        >>> split_citation_text("Smith J. A study. 2010; Jones K. Another. 2012")
        ['Smith J. A study. 2010', 'Jones K. Another. 2012']
        >>> split_citation_text("Smith J. Title. J Biol. 2010;12:34-56.")
        ['Smith J. Title. J Biol. 2010;12:34-56.']
    """
    stripped = text.strip()
    segments = [s.strip() for s in SEGMENT_DELIMITER.split(stripped) if s.strip()]
    if len(segments) < 2:
        return [stripped]
    for segment in segments:
        if not segment[0].isupper() or not YEAR.search(segment):
            return [stripped]
    return segments


def label_number(label: str | None) -> int | None:
    """Return the first number in a reference label, if any."""
    if not label:
        return None
    match = re.search(r"\d+", label)
    return int(match.group()) if match else None


def label_mark(label: str | None) -> str | None:
    """Return the number shown in a reference label, with any letter suffix.

    Examples:
        >>> label_mark("[2a]")
        '2a'
        >>> label_mark("12.")
        '12'
    """
    if not label:
        return None
    match = re.search(r"\d+[a-z]?", label)
    return match.group() if match else None


def format_numeric(numbers: list[int]) -> str:
    """Format citation numbers as the content of a bracketed group.

    Runs of three or more consecutive numbers collapse into a range.

    Examples:
        >>> format_numeric([2, 3, 4, 7])
        '2-4, 7'
        >>> format_numeric([3, 1])
        '3, 1'
    """
    members = []
    start = 0
    while start < len(numbers):
        end = start
        while end + 1 < len(numbers) and numbers[end + 1] == numbers[end] + 1:
            end += 1
        if end - start >= 2:
            members.append(f"{numbers[start]}-{numbers[end]}")
            start = end + 1
        else:
            members.append(str(numbers[start]))
            start += 1
    return ", ".join(members)


def renumber_label(label: str, number: int) -> str:
    """Replace the number in a reference label, keeping its punctuation.

    Examples:
        >>> renumber_label("[3]", 1)
        '[1]'
        >>> renumber_label("2a.", 5)
        '5.'
    """
    return re.sub(r"\d+[a-z]?", str(number), label, count=1)


def mentions(text: str, surname: str, year: str) -> bool:
    """Whether a reference text mentions both an author surname and a year."""
    return (
        re.search(rf"\b{re.escape(surname)}\b", text) is not None
        and re.search(rf"\b{re.escape(year)}\b", text) is not None
    )
