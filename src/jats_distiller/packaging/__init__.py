"""Manifest and DAR bundle packaging."""

from .dar_packager import DARPackager, decode_media_upload
from .manifest_builder import build_manifest, manifest_to_xml

__all__ = ["DARPackager", "build_manifest", "decode_media_upload", "manifest_to_xml"]
