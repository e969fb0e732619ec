"""
Command-line interface for the project consolidator.

This module is responsible for:
- Parsing command-line arguments using argparse
- Configuring console logging and the run log file
- Choosing the decision provider and progress display
- Running the consolidation and displaying results to the user
- Mapping outcomes to exit codes
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__, PRODUCT_NAME, PRODUCT_DESCRIPTION
from .crawler import DEFAULT_IGNORE_PATTERNS
from .decisions import AutoDecisionProvider, ConsoleDecisionProvider
from .index import PrimarySelectionError
from .logfile import close_log_files, flush_now, log_system, setup_logging
from .pipeline import (
    LAYOUT_CHOICES,
    ConsolidationRun,
    RunConfig,
    RunSummary,
    RunValidationError,
)
from .progress import LoggingProgressSink, TqdmProgressSink
from .transfer import DEFAULT_PROGRESS_DEPTH

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="project-consolidator",
        description=f"""
{PRODUCT_NAME} - {PRODUCT_DESCRIPTION}

Find project folders under SOURCE, group copies of the same project, and
move them into OUTPUT. The newest copy of each project becomes the primary
at OUTPUT/<year>/<name>; older copies are kept under
<name>/.versions/v1_<name>, v2_<name>, ...
        """.strip(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Map projects only (writes OUTPUT/manifest.json, moves nothing)
  %(prog)s /mnt/share /mnt/consolidated --map-only

  # Copy instead of move, flat layout
  %(prog)s /mnt/share /mnt/consolidated --copy --layout flat

  # Choose primaries by hand and keep a log file
  %(prog)s /mnt/share /mnt/consolidated -i --log-file run.log

  # Extra ignore patterns and a CSV report
  %(prog)s /mnt/share /mnt/consolidated --ignore "dist" --ignore "*.egg-info" --report moves.csv

Notes:
  - A folder is a project if it directly holds package.json,
    requirements.txt, a solution/project file, or a README
  - Copies with the same package.json name, or an identical marker file,
    are treated as one project
  - Destination name clashes between different projects get _1, _2 suffixes
        """
    )

    parser.add_argument(
        "source_root",
        type=Path,
        help="Root directory to search for project folders"
    )
    parser.add_argument(
        "output_root",
        type=Path,
        help="Directory that will receive the consolidated projects"
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--map-only",
        action="store_true",
        help="Only discover projects and write the manifest; move nothing"
    )
    mode.add_argument(
        "--copy",
        action="store_true",
        dest="copy_only",
        help="Copy projects instead of moving them (sources are left in place)"
    )

    parser.add_argument(
        "--layout",
        choices=LAYOUT_CHOICES,
        default=None,
        help="Primary layout: 'dated' (OUTPUT/<year>/<name>), 'flat' (OUTPUT/<name>) "
             "or 'ask' (default: ask with -i, otherwise dated)"
    )
    parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        help="Ask which copy is primary for every project with duplicates"
    )
    parser.add_argument(
        "--date-strategy",
        choices=["filesystem", "content"],
        default="filesystem",
        help="How copies are dated: newest file time (default) or copyright year"
    )
    parser.add_argument(
        "--ignore",
        type=str,
        action="append",
        default=[],
        dest="ignore_patterns",
        metavar="PATTERN",
        help="Additional folder name pattern to skip. Can be specified multiple times."
    )
    parser.add_argument(
        "--manifest",
        type=Path,
        default=None,
        dest="manifest_path",
        metavar="JSON_FILE",
        help="Manifest path (default: OUTPUT/manifest.json)"
    )
    parser.add_argument(
        "-r", "--report",
        type=Path,
        default=None,
        dest="report_path",
        metavar="CSV_FILE",
        help="Write a CSV report of every transfer"
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Allow a non-empty OUTPUT and replace an existing manifest"
    )
    parser.add_argument(
        "--progress-depth",
        type=int,
        default=DEFAULT_PROGRESS_DEPTH,
        metavar="N",
        help=f"Folder levels reported item by item during transfer (default: {DEFAULT_PROGRESS_DEPTH})"
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Append a run log to PATH"
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Don't show a progress bar"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (-v for INFO, -vv for DEBUG)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=__version__
    )

    return parser


def build_config(args: argparse.Namespace) -> RunConfig:
    """Turn parsed arguments into a RunConfig."""
    return RunConfig(
        source_root=args.source_root,
        output_root=args.output_root,
        map_only=args.map_only,
        copy_only=args.copy_only,
        layout=args.layout or ("ask" if args.interactive else "dated"),
        interactive=args.interactive,
        date_strategy=args.date_strategy,
        ignore_patterns=DEFAULT_IGNORE_PATTERNS + tuple(args.ignore_patterns),
        manifest_path=args.manifest_path,
        report_path=args.report_path,
        overwrite=args.overwrite,
        progress_depth=args.progress_depth,
    )


def print_banner(config: RunConfig) -> None:
    """Print startup banner with configuration."""
    print(f"\n{'='*60}")
    print(f"{PRODUCT_NAME}")
    print(f"Version {__version__}")
    print(f"{PRODUCT_DESCRIPTION}")
    print(f"{'='*60}")
    print(f"Source root:  {config.source_root}")
    print(f"Output root:  {config.output_root}")

    if config.map_only:
        print("Mode:         MAP ONLY (no changes will be made)")
    elif config.copy_only:
        print("Mode:         COPY (sources are left in place)")
    else:
        print("Mode:         MOVE (folders will be moved)")

    print(f"Layout:       {config.layout}")
    print(f"Manifest:     {config.manifest_path}")
    if config.report_path:
        print(f"Report:       {config.report_path}")
    print(f"{'='*60}\n")


def print_summary(summary: RunSummary, config: RunConfig) -> None:
    """Print final summary of operations."""
    print(f"\n{'='*60}")
    print("SUMMARY")
    print(f"{'='*60}")

    print("\nDiscovery:")
    print(f"  Projects found:        {summary.projects}")
    print(f"  Distinct projects:     {summary.groups}")
    print(f"  With duplicates:       {summary.duplicate_groups}")

    if not config.map_only:
        verb = "Copied" if config.copy_only else "Moved"
        print("\nOperations:")
        if summary.layout is not None:
            print(f"  Layout:                {summary.layout.value}")
        print(f"  {verb + ':':<23}{summary.migrated}")
        if summary.partial:
            print(f"  Partially transferred: {summary.partial}")
        if summary.skipped:
            print(f"  Skipped:               {summary.skipped}")
        if summary.failed:
            print(f"  Errors:                {summary.failed}")

    print(f"{'='*60}\n")


def main(argv: list = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_file)
    config = build_config(args)

    log_system(logger, f"{PRODUCT_NAME} v{__version__} started")
    logger.debug(f"Arguments: {args}")
    for key, value in config.parameters().items():
        if value:
            logger.info(f"  {key}: {value}")
    flush_now()

    interactive = config.interactive or config.layout == "ask"
    decisions = ConsoleDecisionProvider() if interactive else AutoDecisionProvider()

    # The bar and prompts share the console, so interactive runs log progress instead
    if args.no_progress or interactive:
        progress = LoggingProgressSink()
    else:
        progress = TqdmProgressSink()

    print_banner(config)

    try:
        summary = ConsolidationRun(config, decisions, progress).run()

        print_summary(summary, config)
        print(f"Manifest saved to: {summary.manifest_path}")

        log_system(logger, f"Run finished: {summary.migrated} project(s) transferred")
        return 0

    except (RunValidationError, PrimarySelectionError, FileExistsError, FileNotFoundError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.", file=sys.stderr)
        logger.error("Run cancelled by user")
        return 130

    except Exception as e:
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        logger.exception("Unexpected error")
        return 1

    finally:
        if isinstance(progress, TqdmProgressSink):
            progress.close()
        flush_now()
        close_log_files()


if __name__ == "__main__":
    sys.exit(main())
