"""Reference normalization for JATS articles."""

from .processor import ReferenceProcessor, normalize_references

__all__ = ["ReferenceProcessor", "normalize_references"]
