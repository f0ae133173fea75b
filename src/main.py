#!/usr/bin/env python3
"""
Figma Updater - Main Entry Point

Inspects the changes between two versions of a Figma file and applies
them to a local project: text replacements in source files and binary
asset updates.

Usage:
    python -m src.main versions FILE_KEY
    python -m src.main diff FILE_KEY --from V1 --to V2
    python -m src.main apply FILE_KEY --from V1 --to V2 [--dry-run]

Environment Variables Required:
    FIGMA_API_TOKEN         - Figma personal access token
    DIFF_SERVICE_BASE_URL   - Base URL of the version diff service

See .env.example for all configuration options.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

# Add project root to path for imports if running as script
if __name__ == "__main__" and __package__ is None:
    PROJECT_ROOT = Path(__file__).parent.parent
    sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import load_settings, ConfigurationError, Settings
from src.diffs.client import DiffServiceClient, DiffServiceError
from src.diffs.models import DiffResponse
from src.figma.client import FigmaClient, FigmaAPIError
from src.updater.assets import AssetDiffResult, AssetStatus, HttpFetcher
from src.updater.engine import UpdateEngine
from src.updater.text import TextDiffResult

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from external libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="figma-updater",
        description="Inspect Figma version diffs and update your codebase automatically",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m src.main versions AbC123
    python -m src.main diff AbC123 -f 101 -t 102
    python -m src.main apply AbC123 -f 101 -t 102 --dry-run
    python -m src.main --env .env.local apply AbC123 -f 101 -t 102
        """,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    parser.add_argument(
        "--env",
        type=Path,
        help="Path to .env file (default: .env in current directory)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    versions = subparsers.add_parser("versions", help="List versions of a Figma file")
    versions.add_argument("file_key", help="Figma file key")

    for name, help_text in (
        ("diff", "Show text and asset changes between two versions"),
        ("apply", "Apply changes between two versions to the local project"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("file_key", help="Figma file key")
        sub.add_argument("-f", "--from", dest="from_version", required=True, help="Source version id")
        sub.add_argument("-t", "--to", dest="to_version", required=True, help="Target version id")
        if name == "apply":
            sub.add_argument(
                "--dry-run",
                action="store_true",
                help="Show replacements without writing to disk",
            )

    return parser.parse_args(argv)


def print_diff_response(response: DiffResponse) -> None:
    """Log the text and asset changes of a diff response."""
    if not response.diffs:
        logger.info("No text changes detected between the selected versions.")
    else:
        logger.info(f"Changes from {response.from_version.label} to {response.to_version.label}:")
        for index, diff in enumerate(response.diffs, 1):
            logger.info(f"#{index} {diff.label}")
            logger.info(f"- {diff.previous_text}")
            logger.info(f"+ {diff.current_text}")

    if not response.asset_diffs:
        logger.info("No binary asset changes detected between the selected versions.")
        return

    logger.info("Binary asset changes:")
    for index, asset in enumerate(response.asset_diffs, 1):
        logger.info(f"#{index} {asset.label}")
        logger.info(f"  path: {asset.asset_path}")
        if asset.mime_type:
            logger.info(f"  mime: {asset.mime_type}")


def print_text_results(results: list[TextDiffResult], dry_run: bool) -> None:
    """Log per-file replacement counts for each text diff."""
    if not results:
        logger.info("No diffs to apply.")
        return

    total = 0
    for result in results:
        if result.failed:
            logger.warning(f"Error applying {result.diff.label}: {result.error}")

        if not result.matched:
            if not result.failed:
                logger.warning(f"No matches found for {result.diff.label}.")
            continue

        logger.info(f"Updated references for {result.diff.label}")
        for match in result.matched_files:
            total += match.replacements
            message = f"{match.file_path} ({match.replacements} replacements)"
            logger.info(f"[dry-run] {message}" if dry_run else message)

    if dry_run:
        logger.info(f"Dry run finished. {total} potential replacements were identified.")
    else:
        logger.info(f"Done! {total} replacements written to disk.")


def print_asset_results(results: list[AssetDiffResult], dry_run: bool) -> None:
    """Log the outcome of each asset diff."""
    if not results:
        return

    written = 0
    for result in results:
        label = result.output_path or result.diff.asset_path or result.diff.label

        if result.status is AssetStatus.WRITTEN:
            written += 1
            logger.info(f"{label} updated")
        elif result.status is AssetStatus.DRY_RUN:
            logger.info(f"[dry-run] {label}")
        else:
            logger.warning(f"{label} skipped: {result.reason or 'unknown reason'}")

    if dry_run:
        logger.info("Dry run finished for binary assets.")
    else:
        logger.info(f"Binary asset updates completed. {written} file(s) written.")


def run_versions(settings: Settings, file_key: str) -> int:
    """List the versions of a Figma file."""
    with FigmaClient(
        api_token=settings.figma.api_token,
        base_url=settings.figma.base_url,
        timeout=settings.http.timeout_seconds,
        max_retries=settings.http.max_retries,
    ) as client:
        try:
            versions = client.list_versions(file_key)
        except FigmaAPIError as e:
            logger.error(f"Unable to fetch Figma versions: {e}")
            return 1

    if not versions:
        logger.warning("No versions available for the provided file.")
        return 0

    for version in versions:
        logger.info(f"{version.id} {version.label} ({version.created_at})")
        if version.description:
            logger.info(f"  {version.description}")

    return 0


def run_diff(settings: Settings, file_key: str, from_version: str, to_version: str) -> int:
    """Show the changes between two versions."""
    with _diff_client(settings) as client:
        try:
            response = client.get_diffs(file_key, from_version, to_version)
        except DiffServiceError as e:
            logger.error(f"Unable to fetch diff: {e}")
            return 1

    print_diff_response(response)
    return 0


def run_apply(
    settings: Settings,
    file_key: str,
    from_version: str,
    to_version: str,
    dry_run: bool,
) -> int:
    """Apply the changes between two versions to the project."""
    if dry_run:
        logger.info("DRY RUN MODE - No changes will be made")

    with _diff_client(settings) as client, HttpFetcher(
        timeout=settings.http.timeout_seconds,
        max_retries=settings.http.max_retries,
    ) as fetcher:
        engine = UpdateEngine(
            diff_client=client,
            project=settings.project,
            dry_run=dry_run,
            fetcher=fetcher,
        )

        try:
            report = engine.apply(file_key, from_version, to_version)
        except ConfigurationError as e:
            logger.error(str(e))
            return 1
        except DiffServiceError as e:
            logger.error(f"Unable to apply diff: {e}")
            return 1

    print_diff_response(report.response)
    print_text_results(report.text_results, dry_run)
    print_asset_results(report.asset_results, dry_run)

    if report.stats.errors > 0:
        logger.warning("Some diffs could not be applied. Check logs above.")
        return 1

    return 0


def _diff_client(settings: Settings) -> DiffServiceClient:
    return DiffServiceClient(
        base_url=settings.diff_service.base_url,
        api_key=settings.diff_service.api_key,
        timeout=settings.http.timeout_seconds,
        max_retries=settings.http.max_retries,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        settings = load_settings(env_file=args.env)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Please check your .env file or environment variables")
        logger.error("See .env.example for required configuration")
        return 1

    try:
        if args.command == "versions":
            return run_versions(settings, args.file_key)
        if args.command == "diff":
            return run_diff(settings, args.file_key, args.from_version, args.to_version)
        return run_apply(
            settings,
            args.file_key,
            args.from_version,
            args.to_version,
            dry_run=args.dry_run,
        )
    except KeyboardInterrupt:
        logger.info("Update interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
