"""Embedded media schemas."""

from pydantic import BaseModel


class MediaAsset(BaseModel):
    """A binary media file embedded in a source document.

    Attributes:
        id: Figure identifier (source id attribute or "fig-<n>")
        name: File name of the media (e.g. "image1.png")
        media_type: MIME type of the media
        path: Path of the media inside the source archive
        data: Raw bytes
        owner_id: Identifier of the document owning the media
    """

    id: str
    name: str
    media_type: str = "application/octet-stream"
    path: str
    data: bytes
    owner_id: str = "manuscript"

    @property
    def size(self) -> int:
        return len(self.data)
