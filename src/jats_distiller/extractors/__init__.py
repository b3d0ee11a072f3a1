"""Extractors for media embedded in source documents."""

from .asset_extractor import AssetExtractor, extract_assets

__all__ = ["AssetExtractor", "extract_assets"]
