"""Command-line interface for jats-distiller."""

import argparse
import logging
import sys
from pathlib import Path

from jats_distiller.exceptions import ConversionError
from jats_distiller.extractors import extract_assets
from jats_distiller.packaging import DARPackager, build_manifest, manifest_to_xml
from jats_distiller.pipeline import Orchestrator
from schemas.media import MediaAsset
from schemas.metadata import JournalMetadata
from schemas.options import ConversionOptions

FORMAT_CHOICES = ["auto", "docx", "jats_xml"]
OPTION_FLAGS = {
    "split_references": "Split reference entries that bundle several citations",
    "reorder_references": "Reorder references by first citation in the body",
    "process_brackets": "Turn bracketed citations into cross-references",
    "reference_check": "Check that every citation resolves to a reference",
    "verbose_logging": "Log every individual reference change",
    "preserve_article_type": "Keep the source article-type",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def load_options(args: argparse.Namespace) -> ConversionOptions:
    """Build conversion options from an options file and CLI flags.

    Flags given on the command line override values from the file.
    """
    if args.options_file is not None:
        options = ConversionOptions.model_validate_json(args.options_file.read_text())
    else:
        options = ConversionOptions()

    updates = {field: True for field in OPTION_FLAGS if getattr(args, field)}
    if args.fatal_unresolved:
        updates["unresolved_citations"] = "fatal"
    if updates:
        options = options.model_copy(update=updates)
    return options


def default_output(input_path: Path) -> Path:
    """Output path used when --output is not given."""
    return input_path.with_name(f"{input_path.stem}.jats.xml")


def convert_document(args: argparse.Namespace) -> int:
    """Execute the convert command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    input_path = args.input.resolve()
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        return 1

    try:
        options = load_options(args)
        metadata = None
        if args.metadata_file is not None:
            metadata = JournalMetadata.model_validate_json(args.metadata_file.read_text())
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load settings: {e}")
        return 1

    source_format = None if args.format == "auto" else args.format
    result = Orchestrator(options, metadata).convert(input_path.read_bytes(), source_format)

    if args.log_file is not None:
        args.log_file.parent.mkdir(parents=True, exist_ok=True)
        args.log_file.write_text(result.log_text + "\n")
        logger.info(f"  Log: {args.log_file}")

    if not result.success:
        logger.error(f"Conversion failed ({result.error_kind}): {result.error_message}")
        return 1

    output_path = args.output or default_output(input_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(result.document)
    for asset in result.media:
        (output_path.parent / asset.name).write_bytes(asset.data)

    logger.info(f"Converted {input_path.name}")
    logger.info(f"  Output: {output_path}")
    logger.info(f"  Media: {len(result.media)}")
    if result.warnings:
        logger.warning(f"  Warnings: {len(result.warnings)}")
        for warning in result.warnings:
            logger.warning(f"    - {warning}")

    return 0


def write_manifest(args: argparse.Namespace) -> int:
    """Execute the manifest command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    input_path = args.input.resolve()
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        return 1

    try:
        manifest = build_manifest(input_path.read_bytes())
    except ConversionError as e:
        logger.error(f"Failed to build manifest: {e.message}")
        return 1

    manifest_xml = manifest_to_xml(manifest)
    if args.output is None:
        sys.stdout.write(manifest_xml.decode("utf-8"))
    else:
        args.output.write_bytes(manifest_xml)
        logger.info(f"Wrote manifest with {len(manifest.assets)} assets to {args.output}")

    return 0


def extract_media(args: argparse.Namespace) -> int:
    """Execute the extract-assets command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    input_path = args.input.resolve()
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        return 1

    assets = extract_assets(input_path.read_bytes())
    output_dir = args.output
    output_dir.mkdir(parents=True, exist_ok=True)
    for name, asset in assets.items():
        (output_dir / name).write_bytes(asset.data)
        logger.info(f"  {name} ({asset.media_type}, {asset.size} bytes)")

    logger.info(f"Extracted {len(assets)} media files to {output_dir}")
    return 0


def build_bundle(args: argparse.Namespace) -> int:
    """Execute the bundle command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    input_path = args.input.resolve()
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        return 1

    media = []
    if args.media_dir is not None:
        for path in sorted(args.media_dir.iterdir()):
            if path.is_file():
                media.append(
                    MediaAsset(id=path.stem, name=path.name, path=path.name, data=path.read_bytes())
                )

    try:
        bundle = DARPackager().build_bundle(input_path.read_bytes(), media)
    except ConversionError as e:
        logger.error(f"Failed to build bundle: {e.message}")
        return 1

    output_path = args.output or input_path.with_suffix(".dar.json")
    output_path.write_text(bundle.to_json())
    logger.info(f"Wrote DAR bundle with {len(bundle.resources)} resources to {output_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="jats-distiller",
        description="Convert DOCX and JATS manuscripts into normalized JATS XML",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert a manuscript to JATS XML",
        description="Convert a DOCX or JATS XML manuscript into normalized JATS XML, writing embedded media next to the output.",
    )
    convert_parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Path to the source manuscript",
    )
    convert_parser.add_argument(
        "--format",
        choices=FORMAT_CHOICES,
        default="auto",
        help="Source format (default: detect from content)",
    )
    convert_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output path for the JATS XML (default: <input-stem>.jats.xml)",
    )
    for field, help_text in OPTION_FLAGS.items():
        convert_parser.add_argument(
            f"--{field.replace('_', '-')}",
            dest=field,
            action="store_true",
            help=help_text,
        )
    convert_parser.add_argument(
        "--fatal-unresolved",
        action="store_true",
        help="Fail the conversion when a citation does not resolve",
    )
    convert_parser.add_argument(
        "--options-file",
        type=Path,
        default=None,
        help="JSON file with conversion options",
    )
    convert_parser.add_argument(
        "--metadata-file",
        type=Path,
        default=None,
        help="JSON file with journal metadata for the front matter",
    )
    convert_parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write the conversion log to this file",
    )
    convert_parser.set_defaults(func=convert_document)

    manifest_parser = subparsers.add_parser(
        "manifest",
        help="Build the manifest of a JATS article",
        description="List the figures of a JATS article that carry a graphic, as a DAR manifest.",
    )
    manifest_parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Path to the JATS XML article",
    )
    manifest_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output path for manifest.xml (default: standard output)",
    )
    manifest_parser.set_defaults(func=write_manifest)

    extract_parser = subparsers.add_parser(
        "extract-assets",
        help="Extract embedded media from a DOCX package",
        description="Write every media file embedded in a DOCX package to a directory.",
    )
    extract_parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Path to the DOCX package",
    )
    extract_parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Directory to write media files to",
    )
    extract_parser.set_defaults(func=extract_media)

    bundle_parser = subparsers.add_parser(
        "bundle",
        help="Build a DAR bundle for a JATS article",
        description="Wrap a JATS article, its manifest and its media into a DAR JSON bundle.",
    )
    bundle_parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Path to the JATS XML article",
    )
    bundle_parser.add_argument(
        "--media-dir",
        type=Path,
        default=None,
        help="Directory holding the article's media files",
    )
    bundle_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output path for the bundle (default: <input>.dar.json)",
    )
    bundle_parser.set_defaults(func=build_bundle)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
