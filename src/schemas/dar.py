"""DAR bundle schemas.

A DAR bundle is the JSON resource map handed to round-trip editors. It
wraps the manuscript, the manifest and the media of one conversion.
"""

from pydantic import BaseModel, Field

DAR_MANIFEST_FILE = "manifest.xml"
DAR_MANUSCRIPT_FILE = "manuscript.xml"


class DARResource(BaseModel):
    """One resource of a DAR bundle.

    Attributes:
        encoding: "utf8", "base64" or "url"
        data: Resource content (text, base64 payload or URL)
        size: Size of the decoded content in bytes, if known
        created_at: Creation timestamp (0 when unknown)
        updated_at: Update timestamp (0 when unknown)
    """

    encoding: str
    data: str
    size: int | None = None
    created_at: int | None = Field(default=None, alias="createdAt")
    updated_at: int | None = Field(default=None, alias="updatedAt")

    model_config = {"populate_by_name": True}


class DARBundle(BaseModel):
    """Versioned resource map of a DAR archive."""

    version: int = 1
    resources: dict[str, DARResource] = {}

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
