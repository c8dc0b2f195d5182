"""
Command-line interface for the IPTC writer.
"""

import os
import sys
import argparse
from typing import List, Optional

from .config import AppConfig, load_config
from .logging_setup import setup_logging, get_logger
from .session import Session
from .status import StatusState

logger = get_logger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Write IPTC/XMP titles and keywords into JPEG copies of your images"
    )

    parser.add_argument(
        "images",
        nargs="+",
        help="JPEG, PNG or WebP files to process"
    )

    parser.add_argument(
        "--config",
        default="config.json",
        help="Path to configuration JSON file (default: config.json, defaults used if missing)"
    )

    parser.add_argument(
        "--annotate",
        action="store_true",
        help="Ask the AI service for title and tag suggestions first"
    )

    parser.add_argument(
        "--title",
        help="Title to write into every image (applied after AI suggestions)"
    )

    parser.add_argument(
        "--tags",
        help="Comma-separated keywords to write into every image"
    )

    parser.add_argument(
        "--output-dir",
        help="Override output directory from config file"
    )

    parser.add_argument(
        "--single",
        action="store_true",
        help="Save each image separately instead of one ZIP archive"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode regardless of config setting"
    )

    return parser.parse_args(argv)


def process_arguments(args: argparse.Namespace, config: AppConfig) -> AppConfig:
    """
    Override config values from command-line arguments.

    Args:
        args: Parsed arguments
        config: Loaded configuration

    Returns:
        Updated configuration
    """
    if args.debug:
        config.debug_mode = True
        config.log_level = "DEBUG"
    if args.output_dir:
        config.output_dir = args.output_dir
    return config


def _report(label: str, status: StatusState) -> None:
    if status.is_idle:
        return
    log = logger.error if status.is_error else logger.info
    if status.has_warning:
        log = logger.warning
    log(f"{label}: {status.message}")


def run_session(session: Session, args: argparse.Namespace) -> int:
    """
    Drive one session from the parsed arguments.

    Returns:
        Exit code (0 if every image was written)
    """
    missing = [path for path in args.images if not os.path.isfile(path)]
    for path in missing:
        logger.error(f"File not found: {path}")
    paths = [path for path in args.images if path not in missing]

    session.add_paths(paths)
    _report("Selection", session.ai_status)
    if not session.entries:
        logger.error("No images to process")
        return 1

    if args.annotate:
        session.annotate()
        _report("AI", session.ai_status)

    for entry in session.entries:
        if args.title is not None:
            session.set_title(entry.id, args.title)
        if args.tags is not None:
            session.set_tags(entry.id, args.tags)

    for entry in session.entries:
        logger.info(f"{entry.name}: title={entry.title!r} tags={entry.tags!r}")

    if args.single:
        results = [session.write(entry_id) for entry_id in session.store.ids()]
        failed = sum(1 for r in results if not r.success)
    else:
        outcome = session.write_all()
        _report("Batch", session.bulk_status)
        failed = 0 if outcome.status.is_success else max(outcome.failure_count, 1)

    for entry in session.entries:
        if entry.write_status.is_error:
            logger.error(f"{entry.name}: {entry.write_status.message}")

    return 1 if failed or missing else 0


def run_cli(argv: Optional[List[str]] = None) -> int:
    """
    Run the command-line interface.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    config = None
    try:
        args = parse_arguments(argv)

        if os.path.exists(args.config):
            config = load_config(args.config)
        else:
            config = AppConfig()

        config = process_arguments(args, config)
        setup_logging(config, log_prefix="iptc_writer")

        if not os.path.exists(args.config):
            logger.info(f"Config file {args.config} not found, using defaults")

        with Session(config) as session:
            return run_session(session, args)

    except (ValueError, RuntimeError, OSError) as e:
        logger.error(f"Script execution failed: {str(e)}")
        if config is not None and config.debug_mode:
            import traceback
            logger.error(f"Traceback: {traceback.format_exc()}")
        return 1


def main() -> int:
    """Console script entry point."""
    return run_cli(sys.argv[1:])
