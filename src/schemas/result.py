"""Conversion result schema."""

from typing import Literal

from pydantic import BaseModel

from .manifest import ConversionManifest
from .media import MediaAsset

Stage = Literal["init", "parsing", "normalizing", "packaging", "done", "failed"]


class ConversionResult(BaseModel):
    """Outcome of one conversion.

    A failed result never carries a document, media or a manifest.

    Attributes:
        success: Whether the conversion completed
        stage: Final stage ("done" or "failed")
        failed_stage: Stage that was running when the conversion failed
        error_kind: Error kind on failure (e.g. "MalformedSource")
        error_message: Short error message on failure
        messages: Ordered log and diagnostic messages
        document: Canonical JATS XML bytes
        media: Media extracted from the source
        manifest: Manifest built from the converted document
    """

    success: bool
    stage: Stage = "done"
    failed_stage: Stage | None = None
    error_kind: str | None = None
    error_message: str | None = None
    messages: tuple[str, ...] = ()
    document: bytes | None = None
    media: tuple[MediaAsset, ...] = ()
    manifest: ConversionManifest | None = None

    model_config = {"frozen": True}

    @property
    def warnings(self) -> list[str]:
        return [m for m in self.messages if m.startswith("[Warning]")]

    @property
    def log_text(self) -> str:
        """The full log as a single text artifact."""
        return "\n".join(self.messages)
