"""
Configuration settings with environment variable loading.

All secrets MUST be provided via environment variables.
Never log or expose tokens in any output.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class FigmaConfig:
    """Figma REST API configuration."""
    api_token: str
    base_url: str = "https://api.figma.com"

    def __post_init__(self):
        if not self.api_token:
            raise ConfigurationError("FIGMA_API_TOKEN is required")
        if not self.base_url.startswith(("https://", "http://")):
            raise ConfigurationError("FIGMA_BASE_URL must be an http(s) URL")

    def __repr__(self) -> str:
        """Never expose token in repr."""
        return f"FigmaConfig(base_url='{self.base_url}', api_token='***REDACTED***')"


@dataclass(frozen=True)
class DiffServiceConfig:
    """Diff service (version comparison API) configuration."""
    base_url: str
    api_key: Optional[str] = None

    def __post_init__(self):
        if not self.base_url:
            raise ConfigurationError("DIFF_SERVICE_BASE_URL is required")
        if not self.base_url.startswith(("https://", "http://")):
            raise ConfigurationError("DIFF_SERVICE_BASE_URL must be a valid URL")

    def __repr__(self) -> str:
        key = "***REDACTED***" if self.api_key else None
        return f"DiffServiceConfig(base_url='{self.base_url}', api_key={key!r})"


@dataclass(frozen=True)
class ProjectConfig:
    """
    Local project layout.

    root_dir is always absolute. A relative asset_root_dir is resolved
    against root_dir. Glob lists of None mean "use the resolver defaults".
    """
    root_dir: Path = field(default_factory=Path.cwd)
    include_globs: Optional[tuple[str, ...]] = None
    exclude_globs: Optional[tuple[str, ...]] = None
    asset_root_dir: Optional[Path] = None

    def __post_init__(self):
        if self.root_dir is None or (isinstance(self.root_dir, str) and not self.root_dir.strip()):
            raise ConfigurationError("PROJECT_ROOT_DIR must not be empty")

        root = Path(self.root_dir).expanduser().resolve()
        object.__setattr__(self, 'root_dir', root)

        if self.asset_root_dir is not None:
            object.__setattr__(self, 'asset_root_dir', (root / Path(self.asset_root_dir)).resolve())

        for name in ("include_globs", "exclude_globs"):
            globs = getattr(self, name)
            if globs is None:
                continue
            globs = tuple(globs)
            if not globs or any(not g.strip() for g in globs):
                raise ConfigurationError(f"{name} must contain non-empty glob patterns")
            object.__setattr__(self, name, globs)


@dataclass(frozen=True)
class HttpConfig:
    """Shared HTTP client settings."""
    timeout_seconds: float = 30.0
    max_retries: int = 3


@dataclass(frozen=True)
class Settings:
    """
    Application settings container.

    All configuration is loaded from environment variables.
    Secrets are never logged or exposed.
    """
    figma: FigmaConfig
    diff_service: DiffServiceConfig
    project: ProjectConfig
    http: HttpConfig = field(default_factory=HttpConfig)
    log_level: str = "INFO"

    def __repr__(self) -> str:
        return (
            f"Settings(\n"
            f"  figma={self.figma},\n"
            f"  diff_service={self.diff_service},\n"
            f"  project={self.project},\n"
            f"  http={self.http}\n"
            f")"
        )


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Load settings from environment variables.

    Optionally loads from a .env file first.

    Args:
        env_file: Optional path to .env file

    Returns:
        Configured Settings instance

    Raises:
        ConfigurationError: If required configuration is missing
    """
    # Load .env file if provided
    if env_file and env_file.exists():
        _load_env_file(env_file)
    elif Path(".env").exists():
        _load_env_file(Path(".env"))

    try:
        figma = FigmaConfig(
            api_token=os.getenv("FIGMA_API_TOKEN", ""),
            base_url=os.getenv("FIGMA_BASE_URL", "https://api.figma.com").rstrip("/"),
        )

        diff_service = DiffServiceConfig(
            base_url=os.getenv("DIFF_SERVICE_BASE_URL", "").rstrip("/"),
            api_key=os.getenv("DIFF_SERVICE_API_KEY") or None,
        )

        asset_root = os.getenv("PROJECT_ASSET_ROOT_DIR")
        project = ProjectConfig(
            root_dir=Path(os.getenv("PROJECT_ROOT_DIR") or Path.cwd()),
            include_globs=split_globs(os.getenv("PROJECT_INCLUDE_GLOBS")),
            exclude_globs=split_globs(os.getenv("PROJECT_EXCLUDE_GLOBS")),
            asset_root_dir=Path(asset_root) if asset_root else None,
        )

        http = HttpConfig(
            timeout_seconds=float(os.getenv("HTTP_TIMEOUT", "30.0")),
            max_retries=int(os.getenv("HTTP_MAX_RETRIES", "3")),
        )

        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        settings = Settings(
            figma=figma,
            diff_service=diff_service,
            project=project,
            http=http,
            log_level=log_level,
        )

        logger.info("Configuration loaded successfully")
        logger.debug(f"Settings: {settings}")

        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


def split_globs(value: Optional[str]) -> Optional[tuple[str, ...]]:
    """
    Split a comma-separated glob list.

    Commas inside brace groups (``*.{ts,tsx}``) do not split.
    Returns None for an unset or blank value.
    """
    if value is None or not value.strip():
        return None

    parts = []
    current = []
    depth = 0
    for char in value:
        if char == "{":
            depth += 1
        elif char == "}" and depth:
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))

    return tuple(p.strip() for p in parts if p.strip())


def _load_env_file(path: Path) -> None:
    """
    Load environment variables from a file.

    Simple .env parser that handles:
    - KEY=value
    - KEY="quoted value"
    - # comments
    - Empty lines
    """
    logger.debug(f"Loading environment from {path}")

    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                logger.warning(f"Invalid line {line_num} in {path}: no '=' found")
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if value.startswith('"') and value.endswith('"'):
                value = value[1:-1]
            elif value.startswith("'") and value.endswith("'"):
                value = value[1:-1]

            # Env vars take precedence
            if key not in os.environ:
                os.environ[key] = value
