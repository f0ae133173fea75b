"""
Project file resolution.

Selects the candidate files a text diff pass scans: include globs minus
exclude globs under one project root, in a stable order.
"""

import fnmatch
import logging
from pathlib import Path
from typing import Iterable, Optional

from config.settings import ConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_INCLUDE_GLOBS = ("**/*.{ts,tsx,js,jsx,vue,svelte,css,scss,md,html,json}",)
DEFAULT_EXCLUDE_GLOBS = ("**/node_modules/**", "**/.git/**", "**/dist/**", "**/build/**")


class RootNotFoundError(ConfigurationError):
    """Raised when the project root directory does not exist."""

    def __init__(self, root_dir: Path):
        super().__init__(f"Project root directory does not exist: {root_dir}")
        self.root_dir = root_dir


class NoFilesMatchedError(ConfigurationError):
    """Raised when include/exclude globs select no files."""

    def __init__(self, root_dir: Path, include_globs: tuple[str, ...], exclude_globs: tuple[str, ...]):
        super().__init__(
            f"No files matched include globs {list(include_globs)} "
            f"(excluding {list(exclude_globs)}) under {root_dir}"
        )
        self.root_dir = root_dir
        self.include_globs = include_globs
        self.exclude_globs = exclude_globs


def expand_braces(pattern: str) -> list[str]:
    """
    Expand shell-style brace groups in a glob.

    ``src/*.{ts,tsx}`` becomes ``["src/*.ts", "src/*.tsx"]``. Groups may
    nest. A group without a top-level comma, or an unbalanced brace, is
    left as literal text.
    """
    start = pattern.find("{")
    while start != -1:
        depth = 0
        for end in range(start, len(pattern)):
            if pattern[end] == "{":
                depth += 1
            elif pattern[end] == "}":
                depth -= 1
                if depth == 0:
                    break
        else:
            return [pattern]

        options = _split_top_level(pattern[start + 1:end])
        if len(options) > 1:
            prefix, suffix = pattern[:start], pattern[end + 1:]
            expanded: list[str] = []
            for option in options:
                for candidate in expand_braces(prefix + option + suffix):
                    if candidate not in expanded:
                        expanded.append(candidate)
            return expanded

        start = pattern.find("{", end + 1)

    return [pattern]


def _split_top_level(body: str) -> list[str]:
    parts = []
    current = []
    depth = 0
    for char in body:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def is_excluded(relative_path: str, exclude_globs: Iterable[str]) -> bool:
    """
    Check a root-relative POSIX path against exclusion globs.

    A leading ``**/`` also matches at the project root, so
    ``**/node_modules/**`` excludes ``node_modules/pkg/index.js``.
    """
    for glob in exclude_globs:
        for pattern in expand_braces(glob):
            if fnmatch.fnmatchcase(relative_path, pattern):
                return True
            if pattern.startswith("**/") and fnmatch.fnmatchcase(relative_path, pattern[3:]):
                return True
    return False


def resolve_project_files(
    root_dir: Path,
    include_globs: Optional[Iterable[str]] = None,
    exclude_globs: Optional[Iterable[str]] = None,
) -> list[Path]:
    """
    Resolve the candidate file set for a project.

    Args:
        root_dir: Project root directory
        include_globs: Globs relative to root (default: common source/text files)
        exclude_globs: Globs to drop (default: build, dependency and VCS dirs)

    Returns:
        Absolute file paths, deduplicated, sorted by root-relative path

    Raises:
        RootNotFoundError: If root_dir is not an existing directory
        NoFilesMatchedError: If no file survives inclusion and exclusion
        ConfigurationError: If a glob is empty or unusable
    """
    include = tuple(include_globs) if include_globs is not None else DEFAULT_INCLUDE_GLOBS
    exclude = tuple(exclude_globs) if exclude_globs is not None else DEFAULT_EXCLUDE_GLOBS

    if not include:
        raise ConfigurationError("At least one include glob is required")

    root = Path(root_dir).expanduser().resolve()
    if not root.is_dir():
        raise RootNotFoundError(root)

    found: dict[str, Path] = {}
    for glob in include:
        for pattern in expand_braces(glob):
            if not pattern.strip():
                raise ConfigurationError(f"Empty include glob in {list(include)}")
            dotted = _names_hidden_segment(pattern)
            try:
                candidates = list(root.glob(_file_pattern(pattern)))
            except (ValueError, NotImplementedError) as e:
                raise ConfigurationError(f"Invalid include glob '{glob}': {e}") from e

            for path in candidates:
                if not path.is_file():
                    continue
                relative = path.relative_to(root).as_posix()
                if not dotted and _is_hidden(relative):
                    continue
                if relative in found or is_excluded(relative, exclude):
                    continue
                found[relative] = path

    if not found:
        raise NoFilesMatchedError(root, include, exclude)

    files = [found[relative] for relative in sorted(found)]
    logger.info(f"Resolved {len(files)} project files under {root}")
    return files


def _file_pattern(pattern: str) -> str:
    # pathlib before 3.13 matches only directories for a trailing "**"
    if pattern == "**" or pattern.endswith("/**"):
        return f"{pattern}/*"
    return pattern


def _names_hidden_segment(pattern: str) -> bool:
    return any(part.startswith(".") and part not in (".", "..") for part in pattern.split("/"))


def _is_hidden(relative_path: str) -> bool:
    """Dotfiles and anything under a dot-directory are hidden."""
    return any(part.startswith(".") for part in relative_path.split("/"))
