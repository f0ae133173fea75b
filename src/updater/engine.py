"""
Update engine.

Orchestrates one update pass: resolve the project files, fetch the diffs
between two versions, then apply text and asset diffs against the same
project root.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from config.settings import ProjectConfig
from ..diffs.client import DiffServiceClient
from ..diffs.models import DiffResponse
from .assets import AssetDiffResult, AssetStatus, Fetcher, http_fetcher, apply_asset_diffs
from .files import resolve_project_files
from .text import TextDiffResult, apply_text_diffs

logger = logging.getLogger(__name__)


@dataclass
class UpdateStats:
    """Statistics from an update pass."""
    text_diffs: int = 0
    unmatched: int = 0
    replacements: int = 0
    files_touched: int = 0
    text_errors: int = 0
    assets_written: int = 0
    assets_skipped: int = 0
    assets_previewed: int = 0

    @property
    def errors(self) -> int:
        return self.text_errors + self.assets_skipped

    def __str__(self) -> str:
        return (
            f"Update complete: {self.text_diffs} text diffs, "
            f"{self.replacements} replacements in {self.files_touched} files, "
            f"{self.unmatched} unmatched, {self.text_errors} text errors, "
            f"{self.assets_written} assets written, {self.assets_skipped} skipped, "
            f"{self.assets_previewed} previewed"
        )


@dataclass
class UpdateReport:
    """Everything an update pass produced."""
    response: DiffResponse
    text_results: list[TextDiffResult] = field(default_factory=list)
    asset_results: list[AssetDiffResult] = field(default_factory=list)
    stats: UpdateStats = field(default_factory=UpdateStats)
    dry_run: bool = False


class UpdateEngine:
    """
    Applies design version diffs to a local project.

    Core principles:
    - Re-running against the same version pair is idempotent
    - A failing diff record never blocks the others
    - A misconfigured project aborts before any diff is applied

    Usage:
        engine = UpdateEngine(
            diff_client=diff_client,
            project=settings.project,
            dry_run=True,
        )

        report = engine.apply("FILE_KEY", "v1", "v2")
        print(report.stats)
    """

    def __init__(
        self,
        diff_client: DiffServiceClient,
        project: ProjectConfig,
        dry_run: bool = False,
        fetcher: Optional[Fetcher] = None,
    ):
        """
        Initialize update engine.

        Args:
            diff_client: Configured diff service client
            project: Project layout (root, globs, assets dir)
            dry_run: If True, report what would change without writing
            fetcher: Byte fetcher for asset download URLs
        """
        self.diff_client = diff_client
        self.project = project
        self.dry_run = dry_run
        self.fetcher = fetcher or http_fetcher

    def fetch(self, file_key: str, from_version: str, to_version: str) -> DiffResponse:
        """Fetch diffs without touching the project."""
        return self.diff_client.get_diffs(file_key, from_version, to_version)

    def apply(self, file_key: str, from_version: str, to_version: str) -> UpdateReport:
        """
        Execute a full update pass.

        Steps:
        1. Resolve candidate project files (fatal if misconfigured)
        2. Fetch diffs between the two versions
        3. Apply text diffs against the resolved files
        4. Apply asset diffs

        Returns:
            UpdateReport with per-record results and stats

        Raises:
            ConfigurationError: If the project root or globs are unusable
            DiffServiceError: If the diffs cannot be fetched
        """
        if self.dry_run:
            logger.info("DRY RUN MODE - No changes will be made")

        files = resolve_project_files(
            self.project.root_dir,
            self.project.include_globs,
            self.project.exclude_globs,
        )

        response = self.fetch(file_key, from_version, to_version)

        text_results = apply_text_diffs(
            response.diffs,
            root_dir=self.project.root_dir,
            dry_run=self.dry_run,
            files=files,
        )

        asset_results = apply_asset_diffs(
            response.asset_diffs,
            root_dir=self.project.root_dir,
            assets_dir=self.project.asset_root_dir,
            dry_run=self.dry_run,
            fetcher=self.fetcher,
        )

        stats = self._compute_stats(text_results, asset_results)
        logger.info(str(stats))

        return UpdateReport(
            response=response,
            text_results=text_results,
            asset_results=asset_results,
            stats=stats,
            dry_run=self.dry_run,
        )

    def _compute_stats(
        self,
        text_results: list[TextDiffResult],
        asset_results: list[AssetDiffResult],
    ) -> UpdateStats:
        stats = UpdateStats(text_diffs=len(text_results))
        touched = set()

        for result in text_results:
            if result.failed:
                stats.text_errors += 1
            if not result.matched:
                stats.unmatched += 1
            stats.replacements += result.total_replacements
            touched.update(match.file_path for match in result.matched_files)

        stats.files_touched = len(touched)

        for result in asset_results:
            if result.status is AssetStatus.WRITTEN:
                stats.assets_written += 1
            elif result.status is AssetStatus.DRY_RUN:
                stats.assets_previewed += 1
            else:
                stats.assets_skipped += 1

        return stats
