"""Conversion orchestrator wiring the conversion stages together.

Runs one source document through parsing, reference normalization and
packaging, and reports the outcome as a ConversionResult.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import PurePosixPath

from jats_distiller.converters import get_converter, resolve_format, serialize_article
from jats_distiller.exceptions import ConversionError, ConversionFailedError
from jats_distiller.extractors import extract_assets
from jats_distiller.packaging import build_manifest
from jats_distiller.references import normalize_references
from schemas.article import XLINK_NS, ArticleDocument
from schemas.media import MediaAsset
from schemas.metadata import JournalMetadata
from schemas.options import ConversionOptions, SourceFormat
from schemas.result import ConversionResult, Stage

from .conversion_log import ConversionLog

logger = logging.getLogger(__name__)


class Orchestrator:
    """End-to-end conversion orchestrator.

    Stages run in the order init, parsing, normalizing, packaging, done.
    Media extraction runs in a worker thread while the source is parsed.
    A failure in any stage ends the run with stage "failed" and a result
    carrying no document, media or manifest.

    Attributes:
        options: Conversion options for every run
        metadata: Journal metadata used for the front matter
    """

    def __init__(
        self,
        options: ConversionOptions | None = None,
        metadata: JournalMetadata | None = None,
    ):
        self.options = options or ConversionOptions()
        self.metadata = metadata

    def convert(
        self, source: bytes, source_format: SourceFormat | str | None = None
    ) -> ConversionResult:
        """Convert a source document to canonical JATS XML.

        Args:
            source: Raw document bytes
            source_format: Format of the source, or None to detect it

        Returns:
            ConversionResult describing the outcome
        """
        log = ConversionLog()
        stage: Stage = "init"
        requested = source_format.value if isinstance(source_format, SourceFormat) else source_format
        log.write_header(requested or "auto", self.options)

        try:
            stage = "parsing"
            log.progress("Parsing source document")
            fmt = resolve_format(source, source_format)
            converter = get_converter(fmt, self.options)
            with ThreadPoolExecutor(max_workers=1) as pool:
                assets_future = pool.submit(extract_assets, source)
                article = converter.convert(source, self.metadata)
                assets = assets_future.result()
            log.extend(article.diagnostics)
            log.info(f"Parsed {fmt.value} source; {len(assets)} media files found")

            stage = "normalizing"
            log.progress("Normalizing references")
            article, diagnostics = normalize_references(article, self.options)
            log.extend(diagnostics)

            stage = "packaging"
            log.progress("Packaging document and manifest")
            document = serialize_article(article)
            manifest = build_manifest(document)
            media = self._link_media(article, assets)
            log.info(f"Manifest lists {len(manifest.assets)} assets")

        except ConversionError as e:
            return self._failure(log, stage, e, e.kind)
        except Exception as e:
            wrapped = ConversionFailedError(f"{type(e).__name__}: {e}")
            wrapped.__cause__ = e
            wrapped.__traceback__ = e.__traceback__
            return self._failure(log, stage, wrapped, wrapped.kind)

        log.progress("Done")
        log.completed()
        return ConversionResult(
            success=True,
            stage="done",
            messages=tuple(log.messages),
            document=document,
            media=media,
            manifest=manifest,
        )

    def _failure(
        self, log: ConversionLog, stage: Stage, error: ConversionError, kind: str
    ) -> ConversionResult:
        logger.error(f"Conversion failed during {stage}: {error.message}")
        log.failed(stage, error)
        return ConversionResult(
            success=False,
            stage="failed",
            failed_stage=stage,
            error_kind=kind,
            error_message=error.message,
            messages=tuple(log.messages),
        )

    def _link_media(
        self, article: ArticleDocument, assets: dict[str, MediaAsset]
    ) -> tuple[MediaAsset, ...]:
        """Give each media asset the id of the figure that shows it.

        Other assets keep their own id unless a figure or an earlier asset
        already holds it, in which case a suffix is added.
        """
        fig_ids = {}
        for fig in article.root.iter("fig"):
            if not fig.get("id"):
                continue
            for graphic in fig.iter("graphic"):
                href = graphic.get(f"{{{XLINK_NS}}}href")
                if href:
                    fig_ids.setdefault(PurePosixPath(href).name, fig.get("id"))

        taken = {fig.get("id") for fig in article.root.iter("fig") if fig.get("id")}
        assigned: set[str] = set()
        linked = []
        for name, asset in assets.items():
            asset_id = fig_ids.get(name)
            if asset_id is None or asset_id in assigned:
                asset_id = _free_id(asset.id, taken | assigned)
            assigned.add(asset_id)
            if asset_id != asset.id:
                asset = asset.model_copy(update={"id": asset_id})
            linked.append(asset)
        return tuple(linked)


def _free_id(candidate: str, taken: set[str]) -> str:
    unique = candidate
    suffix = 1
    while unique in taken:
        suffix += 1
        unique = f"{candidate}-{suffix}"
    return unique


def convert(
    source: bytes,
    source_format: SourceFormat | str | None = None,
    options: ConversionOptions | None = None,
    metadata: JournalMetadata | None = None,
) -> ConversionResult:
    """Convert a source document with a one-off Orchestrator.

    Args:
        source: Raw document bytes
        source_format: Format of the source, or None to detect it
        options: Conversion options
        metadata: Journal metadata for the front matter

    Returns:
        ConversionResult describing the outcome
    """
    return Orchestrator(options, metadata).convert(source, source_format)
