"""
Text diff application.

Finds literal occurrences of each diff's previous text across the project
files and replaces them with the current text.

Rules:
- Matching is literal substring, never regex
- Occurrences are counted leftmost, non-overlapping
- Files with no occurrence are not reported
- A record with no matches is still returned, with no matched files
- A file error stops that record only; later records still run
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..diffs.models import TextDiff
from .files import resolve_project_files

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextMatch:
    """Occurrences of a diff's previous text in one file."""
    file_path: str
    replacements: int


@dataclass(frozen=True)
class TextDiffResult:
    """
    Outcome of applying one TextDiff.

    Attributes:
        diff: The applied diff record
        matched_files: Files containing the previous text, in scan order
        error: Message of the file error that stopped this record, if any
    """
    diff: TextDiff
    matched_files: tuple[TextMatch, ...] = ()
    error: Optional[str] = None

    @property
    def matched(self) -> bool:
        return len(self.matched_files) > 0

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def total_replacements(self) -> int:
        return sum(match.replacements for match in self.matched_files)


def count_occurrences(content: str, needle: str) -> int:
    """
    Count leftmost, non-overlapping literal occurrences of needle.

    Same as ``len(content.split(needle)) - 1``.
    """
    if not needle:
        return 0
    return content.count(needle)


def apply_text_diffs(
    diffs: Iterable[TextDiff],
    root_dir: Path,
    include_globs: Optional[Iterable[str]] = None,
    exclude_globs: Optional[Iterable[str]] = None,
    dry_run: bool = False,
    files: Optional[Sequence[Path]] = None,
) -> list[TextDiffResult]:
    """
    Apply text diffs to project files.

    Args:
        diffs: Text diffs, applied in order
        root_dir: Project root; reported paths are relative to it
        include_globs: Include globs when files is not given
        exclude_globs: Exclude globs when files is not given
        dry_run: If True, count matches but write nothing
        files: Pre-resolved candidate files, to avoid resolving twice

    Returns:
        One TextDiffResult per input diff, in input order

    Raises:
        ConfigurationError: If files must be resolved and resolution fails
    """
    root = Path(root_dir).expanduser().resolve()

    if files is None:
        files = resolve_project_files(root, include_globs, exclude_globs)

    results = []
    for diff in diffs:
        if diff.is_noop:
            logger.debug(f"Skipping no-op text diff for {diff.label}")
            results.append(TextDiffResult(diff=diff))
            continue

        result = _apply_text_diff(diff, root, files, dry_run)
        if result.failed:
            logger.warning(f"Text diff for {diff.label} stopped early: {result.error}")
        results.append(result)

    return results


def _apply_text_diff(
    diff: TextDiff,
    root: Path,
    files: Sequence[Path],
    dry_run: bool,
) -> TextDiffResult:
    """Scan every candidate file for one diff, replacing unless dry_run."""
    matches: list[TextMatch] = []

    for path in files:
        relative = _relative_path(path, root)

        try:
            content = _read_text(path)
        except UnicodeDecodeError:
            logger.debug(f"Skipping non UTF-8 file {relative}")
            continue
        except OSError as e:
            return TextDiffResult(diff=diff, matched_files=tuple(matches), error=f"{relative}: {e}")

        if diff.previous_text not in content:
            continue

        count = count_occurrences(content, diff.previous_text)

        if not dry_run and count > 0:
            try:
                _write_text(path, content.replace(diff.previous_text, diff.current_text))
            except OSError as e:
                return TextDiffResult(diff=diff, matched_files=tuple(matches), error=f"{relative}: {e}")

        logger.debug(f"{relative}: {count} occurrence(s) of text for {diff.label}")
        matches.append(TextMatch(file_path=relative, replacements=count))

    return TextDiffResult(diff=diff, matched_files=tuple(matches))


def _read_text(path: Path) -> str:
    # newline="" keeps line endings untouched on the way back out
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def _relative_path(path: Path, root: Path) -> str:
    return Path(os.path.relpath(path, root)).as_posix()
