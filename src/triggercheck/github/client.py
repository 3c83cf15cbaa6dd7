"""Sync httpx client for the GitHub REST endpoints triggercheck needs.

Only two calls are made: the commit comparison used for changed files and the
contents listing used to discover workflow documents. Nothing is retried; a
failed call propagates to the caller.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from triggercheck.types import Repository

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"


class GitHubApiError(RuntimeError):
    """Non-success response from the GitHub API.

    Attributes:
        status_code: HTTP status of the failed response, or None for transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class GitHubNotFoundError(GitHubApiError):
    """The requested resource does not exist (404)."""


class GitHubClient:
    """Minimal GitHub REST client.

    Usage::

        with GitHubClient(token="ghp_...") as client:
            payload = client.compare_commits(Repository("octo", "example"), "main...feature")
    """

    def __init__(
        self,
        token: str,
        api_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not token:
            raise GitHubApiError("No GitHub token provided. Pass --github-token or set GITHUB_TOKEN.")
        self._api_url = (api_url or DEFAULT_API_URL).rstrip("/")
        self._client = httpx.Client(
            base_url=self._api_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": API_VERSION,
            },
        )

    def compare_commits(self, repository: Repository, basehead: str, per_page: int = 100) -> Any:
        """Return the compare payload for ``basehead`` (first page only)."""
        path = f"/repos/{repository.owner}/{repository.repo}/compare/{quote(basehead, safe='.~/')}"
        return self._get(path, params={"per_page": per_page})

    def get_content(self, repository: Repository, path: str, ref: str) -> Any:
        """Return the contents payload for ``path`` at ``ref`` (file or directory listing)."""
        url = f"/repos/{repository.owner}/{repository.repo}/contents/{quote(path.strip('/'), safe='/')}"
        return self._get(url, params={"ref": ref})

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        try:
            response = self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise GitHubApiError(f"GET {path} failed: {exc}") from exc

        logger.debug("GET %s -> %s", path, response.status_code)
        if response.status_code == 404:
            raise GitHubNotFoundError(f"Not found: GET {path}", status_code=404)
        if response.is_error:
            raise GitHubApiError(
                f"GET {path} failed: HTTP {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response.json()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
