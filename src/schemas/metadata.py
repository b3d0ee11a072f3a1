"""Journal metadata used to populate front matter."""

from pydantic import BaseModel


class JournalMetadata(BaseModel):
    """Journal-level metadata context.

    Attributes:
        journal_id: Journal path or short identifier
        primary_locale: Locale of the primary title (e.g. "en_US")
        titles: Journal titles keyed by locale
        print_issn: Print ISSN, if any
        online_issn: Online ISSN, if any
        publisher: Publisher institution name, if any
    """

    journal_id: str | None = None
    primary_locale: str = "en_US"
    titles: dict[str, str] = {}
    print_issn: str | None = None
    online_issn: str | None = None
    publisher: str | None = None

    @property
    def primary_title(self) -> str | None:
        return self.titles.get(self.primary_locale) or None

    @property
    def translated_titles(self) -> dict[str, str]:
        return {
            locale: title
            for locale, title in self.titles.items()
            if locale != self.primary_locale and title
        }
