"""Conversion manifest schemas.

The manifest describes one converted manuscript and the media assets it
references, in the layout of a DAR archive manifest:

    <dar>
      <documents>
        <document id="manuscript" type="article" path="manuscript.xml"/>
      </documents>
      <assets>
        <asset id="fig-1" type="image/jpg" path="image1.png"/>
      </assets>
    </dar>
"""

from pydantic import BaseModel, Field


class ManifestDocument(BaseModel):
    """The manuscript entry of a manifest."""

    id: str = "manuscript"
    type: str = "article"
    path: str = "manuscript.xml"

    model_config = {"frozen": True}


class ManifestAsset(BaseModel):
    """A media asset entry of a manifest.

    Attributes:
        id: Figure identifier
        type: MIME type recorded for the asset
        path: Reference path of the asset's graphic
    """

    id: str
    type: str = "image/jpg"
    path: str

    model_config = {"frozen": True}


class ConversionManifest(BaseModel):
    """Manifest for one conversion unit.

    Attributes:
        document: The manuscript document entry
        assets: Asset entries in figure order
    """

    document: ManifestDocument = Field(default_factory=ManifestDocument)
    assets: tuple[ManifestAsset, ...] = ()

    model_config = {"frozen": True}
