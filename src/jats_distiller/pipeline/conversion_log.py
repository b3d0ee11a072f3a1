"""Conversion log for one orchestrated conversion.

The log is the artifact handed back to callers: a header describing the
run, progress lines per stage, diagnostics from the converters and the
reference processor, and a closing status.
"""

import logging
import traceback
from datetime import datetime, timezone

from schemas.options import ConversionOptions

logger = logging.getLogger(__name__)

LOG_TITLE = "JATS XML Conversion Log"
SEPARATOR = "=" * 40
SETTING_LABELS = {
    "split_references": "Split references",
    "reorder_references": "Reorder references",
    "process_brackets": "Process bracket citations",
    "reference_check": "Check references",
    "verbose_logging": "Detailed logging",
    "preserve_article_type": "Preserve article type",
}


class ConversionLog:
    """Ordered log entries for a single conversion.

    Every entry is mirrored to the module logger at a matching level.

    Attributes:
        messages: Log lines in the order they were written
    """

    def __init__(self):
        self.messages: list[str] = []

    def write_header(self, source_format: str, options: ConversionOptions) -> None:
        """Write the log header with the run's settings."""
        self.messages.append(LOG_TITLE)
        self.messages.append(f"Date: {datetime.now(timezone.utc).isoformat()}")
        self.messages.append(f"Source format: {source_format}")
        for field, label in SETTING_LABELS.items():
            value = "Yes" if getattr(options, field) else "No"
            self.messages.append(f"{label}: {value}")
        self.messages.append(f"Unresolved citations: {options.unresolved_citations}")
        self.messages.append(SEPARATOR)

    def progress(self, message: str) -> None:
        logger.info(message)
        self.messages.append(f"[Progress] {message}")

    def info(self, message: str) -> None:
        logger.info(message)
        self.messages.append(f"[Info] {message}")

    def warning(self, message: str) -> None:
        logger.warning(message)
        self.messages.append(f"[Warning] {message}")

    def error(self, message: str) -> None:
        logger.error(message)
        self.messages.append(f"[Error] {message}")

    def extend(self, diagnostics: list[str]) -> None:
        """Append diagnostics that already carry their own prefix."""
        self.messages.extend(diagnostics)

    def completed(self) -> None:
        self.messages.append(SEPARATOR)
        self.info("Conversion completed successfully")

    def failed(self, stage: str, error: BaseException) -> None:
        """Close the log for a failed conversion.

        The formatted traceback is appended so the log doubles as the
        error log artifact.
        """
        self.error(f"Conversion failed during {stage}: {error}")
        self.messages.append(SEPARATOR)
        self.messages.append("FATAL ERROR")
        self.messages.extend(
            "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ).rstrip().splitlines()
        )

    def __str__(self) -> str:
        return "\n".join(self.messages)
