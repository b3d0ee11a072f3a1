"""JATS Distiller: convert DOCX and JATS manuscripts into normalized JATS XML."""

from .extractors import extract_assets
from .packaging import build_manifest
from .pipeline import Orchestrator, convert

__all__ = ["Orchestrator", "build_manifest", "convert", "extract_assets"]
