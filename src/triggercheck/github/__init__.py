"""Hosted GitHub API collaborators."""

from triggercheck.github.client import (
    DEFAULT_API_URL,
    GitHubApiError,
    GitHubClient,
    GitHubNotFoundError,
)

__all__ = ["DEFAULT_API_URL", "GitHubApiError", "GitHubClient", "GitHubNotFoundError"]
