"""Conversion pipeline."""

from .conversion_log import ConversionLog
from .orchestrator import Orchestrator, convert

__all__ = ["ConversionLog", "Orchestrator", "convert"]
