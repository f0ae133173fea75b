"""
Pytest configuration and shared fixtures.

Provides project trees, diff records and fake fetchers for updater tests.
"""

import base64
import hashlib
from pathlib import Path
from typing import Callable

import pytest

from src.diffs.models import AssetDiff, TextDiff


# ============================================================================
# Environment Fixtures
# ============================================================================

ENV_VARS = (
    "FIGMA_API_TOKEN",
    "FIGMA_BASE_URL",
    "DIFF_SERVICE_BASE_URL",
    "DIFF_SERVICE_API_KEY",
    "PROJECT_ROOT_DIR",
    "PROJECT_INCLUDE_GLOBS",
    "PROJECT_EXCLUDE_GLOBS",
    "PROJECT_ASSET_ROOT_DIR",
    "HTTP_TIMEOUT",
    "HTTP_MAX_RETRIES",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path: Path):
    """Remove updater env vars and run from an empty directory (no .env)."""
    for name in ENV_VARS:
        # setenv first so teardown also removes values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def mock_env(clean_env, tmp_path: Path):
    """Set a complete, valid environment."""
    clean_env.setenv("FIGMA_API_TOKEN", "figd_test_token")
    clean_env.setenv("DIFF_SERVICE_BASE_URL", "https://diffs.test/")
    clean_env.setenv("DIFF_SERVICE_API_KEY", "diff_key")
    clean_env.setenv("PROJECT_ROOT_DIR", str(tmp_path))
    clean_env.setenv("PROJECT_INCLUDE_GLOBS", "web/src/**/*.{ts,tsx},docs/*.md")
    clean_env.setenv("PROJECT_ASSET_ROOT_DIR", "web/public/assets")
    return clean_env


# ============================================================================
# Project Fixtures
# ============================================================================

@pytest.fixture
def write_file(tmp_path: Path) -> Callable[..., Path]:
    """Write a file under tmp_path, creating parent directories."""
    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
        return path
    return _write


@pytest.fixture
def project_dir(tmp_path: Path, write_file) -> Path:
    """A small web project with sources, docs and ignored directories."""
    write_file("src/App.tsx", 'export const title = "Welcome aboard";\n')
    write_file("src/components/Button.tsx", 'const label = "Sign up";\nconst alt = "Sign up";\n')
    write_file("src/styles/main.css", "/* Welcome aboard */\nbody { color: red; }\n")
    write_file("README.md", "# Welcome aboard\n")
    write_file("node_modules/pkg/index.js", 'module.exports = "Welcome aboard";\n')
    write_file("dist/bundle.js", 'var t = "Welcome aboard";\n')
    write_file("notes.txt", "Welcome aboard\n")
    return tmp_path


# ============================================================================
# Diff Fixtures
# ============================================================================

@pytest.fixture
def sample_text_diff() -> TextDiff:
    """Create a sample text diff."""
    return TextDiff(
        node_id="12:34",
        node_name="Hero title",
        previous_text="Welcome aboard",
        current_text="Welcome back",
    )


@pytest.fixture
def svg_bytes() -> bytes:
    return b"<svg xmlns='http://www.w3.org/2000/svg'/>"


@pytest.fixture
def sample_asset_diff(svg_bytes: bytes) -> AssetDiff:
    """Create a sample inline asset diff."""
    return AssetDiff(
        node_id="56:78",
        node_name="Logo",
        asset_path="icons/logo.svg",
        base64_data=base64.b64encode(svg_bytes).decode("ascii"),
        mime_type="image/svg+xml",
        sha256=hashlib.sha256(svg_bytes).hexdigest(),
    )


class FakeFetcher:
    """Deterministic fetcher recording every requested URL."""

    def __init__(self, payloads: dict[str, bytes] | None = None, error: Exception | None = None):
        self.payloads = payloads or {}
        self.error = error
        self.calls: list[str] = []

    def __call__(self, url: str) -> bytes:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.payloads[url]


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher({"https://cdn.test/banner.png": b"fetched"})


# ============================================================================
# API Response Fixtures
# ============================================================================

@pytest.fixture
def diff_service_response() -> dict:
    """Sample diff service payload."""
    return {
        "fileKey": "AbC123",
        "fromVersion": {"id": "101", "label": "Draft", "createdAt": "2026-01-10T08:00:00Z"},
        "toVersion": {"id": "102", "label": "Launch", "createdAt": "2026-01-15T14:30:00Z"},
        "diffs": [
            {
                "nodeId": "12:34",
                "nodeName": "Hero title",
                "previousText": "Welcome aboard",
                "currentText": "Welcome back",
            },
        ],
        "assetDiffs": [
            {
                "nodeId": "56:78",
                "nodeName": "Banner",
                "assetPath": "images/banner.png",
                "downloadUrl": "https://cdn.test/banner.png",
                "mimeType": "image/png",
            },
        ],
    }


@pytest.fixture
def figma_versions_response() -> dict:
    """Sample Figma versions payload."""
    return {
        "versions": [
            {
                "id": "102",
                "label": "Launch",
                "description": "Final copy",
                "created_at": "2026-01-15T14:30:00Z",
            },
            {
                "id": "101",
                "label": None,
                "description": None,
                "created_at": "2026-01-10T08:00:00Z",
            },
        ],
    }


@pytest.fixture
def make_fetcher() -> type[FakeFetcher]:
    """Factory for fetchers with custom payloads or errors."""
    return FakeFetcher
