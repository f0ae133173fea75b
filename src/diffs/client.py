"""
Diff service client.

Fetches the text and asset changes recorded between two versions of a
design file. The API key is passed via configuration and never logged.
"""

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .models import AssetDiff, DiffResponse, TextDiff, VersionRef

logger = logging.getLogger(__name__)


class DiffServiceError(Exception):
    """Raised when the diff service returns an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DiffServiceClient:
    """
    Client for the version diff service.

    Usage:
        with DiffServiceClient(base_url="https://diffs.example.com") as client:
            response = client.get_diffs("FILE_KEY", "v1", "v2")
            for diff in response.diffs:
                print(diff.previous_text, "->", diff.current_text)
    """

    DIFFS_ENDPOINT = "/figma/diffs"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
    ):
        """
        Initialize diff service client.

        Args:
            base_url: Service base URL
            api_key: Optional bearer token (never logged)
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for transient failures
        """
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.timeout = timeout

        self._session = requests.Session()

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

        self._session.headers.update({"Accept": "application/json"})
        if self._api_key:
            self._session.headers["Authorization"] = f"Bearer {self._api_key}"

        logger.info(f"Diff service client initialized for {self.base_url}")

    def __repr__(self) -> str:
        """Never expose the API key in repr."""
        return f"DiffServiceClient(base_url='{self.base_url}')"

    def get_diffs(self, file_key: str, from_version: str, to_version: str) -> DiffResponse:
        """
        Fetch the changes between two versions of a design file.

        Args:
            file_key: Design file key
            from_version: Older version identifier
            to_version: Newer version identifier

        Returns:
            DiffResponse with text and asset diffs in service order

        Raises:
            DiffServiceError: If the request fails or the body is not JSON
        """
        logger.info(f"Fetching diffs for {file_key}: {from_version} -> {to_version}")

        url = f"{self.base_url}{self.DIFFS_ENDPOINT}"
        params = {
            "fileKey": file_key,
            "fromVersion": from_version,
            "toVersion": to_version,
        }

        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            error_msg = f"Diff service error: {e}"
            logger.error(error_msg)
            raise DiffServiceError(error_msg, status_code=status) from e

        except requests.exceptions.RequestException as e:
            error_msg = f"Diff service request failed: {e}"
            logger.error(error_msg)
            raise DiffServiceError(error_msg) from e

        except ValueError as e:
            raise DiffServiceError(f"Diff service returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise DiffServiceError("Diff service returned an unexpected payload")

        return parse_diff_response(data, file_key, from_version, to_version)

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()
        logger.debug("Diff service session closed")

    def __enter__(self) -> "DiffServiceClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def parse_diff_response(
    data: dict,
    file_key: str,
    from_version: str,
    to_version: str,
) -> DiffResponse:
    """
    Build a DiffResponse from a service payload.

    When the payload echoes a fileKey its version descriptors are used,
    otherwise descriptors are synthesized from the requested ids.
    Malformed diff entries are skipped with a warning.
    """
    diffs = []
    for entry in data.get("diffs") or []:
        try:
            diffs.append(TextDiff.from_api_response(entry))
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed text diff: {e}")

    asset_diffs = []
    for entry in data.get("assetDiffs") or []:
        try:
            asset_diffs.append(AssetDiff.from_api_response(entry))
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed asset diff: {e}")

    from_ref = VersionRef.placeholder(from_version)
    to_ref = VersionRef.placeholder(to_version)

    if data.get("fileKey"):
        file_key = str(data["fileKey"])
        try:
            if data.get("fromVersion"):
                from_ref = VersionRef.from_api_response(data["fromVersion"])
            if data.get("toVersion"):
                to_ref = VersionRef.from_api_response(data["toVersion"])
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring malformed version descriptor: {e}")

    logger.info(f"Received {len(diffs)} text diffs and {len(asset_diffs)} asset diffs")

    return DiffResponse(
        file_key=file_key,
        from_version=from_ref,
        to_version=to_ref,
        diffs=tuple(diffs),
        asset_diffs=tuple(asset_diffs),
    )
