"""
Figma REST API client.

Lists the saved versions of a design file. The personal access token is
passed via configuration and never logged.
"""

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .models import VersionDescriptor

logger = logging.getLogger(__name__)


class FigmaAPIError(Exception):
    """Raised when the Figma API returns an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FigmaClient:
    """
    Client for the Figma REST API.

    Usage:
        client = FigmaClient(api_token="...")

        for version in client.list_versions("FILE_KEY"):
            print(version.id, version.label)
    """

    VERSIONS_ENDPOINT = "/v1/files/{file_key}/versions"

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.figma.com",
        timeout: float = 30.0,
        max_retries: int = 3,
    ):
        """
        Initialize Figma client.

        Args:
            api_token: Personal access token (never logged)
            base_url: API base URL
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for transient failures
        """
        self.base_url = base_url.rstrip("/")
        self._api_token = api_token
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

        self._session.headers.update({
            "X-Figma-Token": self._api_token,
            "Accept": "application/json",
        })

        logger.info(f"Figma client initialized for {self.base_url}")

    def __repr__(self) -> str:
        """Never expose token in repr."""
        return f"FigmaClient(base_url='{self.base_url}')"

    def _make_request(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """
        Make authenticated GET request to the Figma API.

        Raises:
            FigmaAPIError: If request fails
        """
        url = f"{self.base_url}{endpoint}"

        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        except requests.exceptions.HTTPError as e:
            error_msg = f"Figma API error: {e}"
            try:
                error_body = e.response.json()
                if "err" in error_body:
                    error_msg = f"Figma API error: {error_body['err']}"
            except (ValueError, AttributeError):
                pass

            logger.error(error_msg)
            raise FigmaAPIError(
                error_msg,
                status_code=e.response.status_code if e.response is not None else None,
            ) from e

        except requests.exceptions.RequestException as e:
            error_msg = f"Figma request failed: {e}"
            logger.error(error_msg)
            raise FigmaAPIError(error_msg) from e

        except ValueError as e:
            raise FigmaAPIError(f"Figma API returned invalid JSON: {e}") from e

    def list_versions(self, file_key: str) -> list[VersionDescriptor]:
        """
        Fetch the version history of a file.

        Args:
            file_key: Figma file key

        Returns:
            List of VersionDescriptor, newest first as returned by Figma
        """
        logger.info(f"Fetching versions for file {file_key}")

        data = self._make_request(self.VERSIONS_ENDPOINT.format(file_key=file_key))

        if not isinstance(data, dict):
            raise FigmaAPIError("Figma API returned an unexpected payload")

        versions = []
        for entry in data.get("versions") or []:
            try:
                versions.append(VersionDescriptor.from_api_response(entry))
            except (ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed version entry: {e}")
                continue

        logger.info(f"Found {len(versions)} versions")
        return versions

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()
        logger.debug("Figma client session closed")

    def __enter__(self) -> "FigmaClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
