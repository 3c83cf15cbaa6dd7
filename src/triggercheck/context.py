"""Run inputs: repository identity, commit range and event context.

Explicit overrides always win; otherwise values come from the GitHub Actions
environment (``GITHUB_*`` variables and the event payload file).
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from triggercheck.git.commands import remote_url
from triggercheck.types import DiffStrategy, EventContext, Repository

PULL_REQUEST_EVENTS = {"pull_request", "pull_request_target"}
DIFF_STRATEGIES = {"auto", "two-dot", "three-dot"}


class InputError(RuntimeError):
    """Raised when run inputs are missing or malformed."""


@dataclass(frozen=True)
class ActionEnvironment:
    """GitHub Actions runtime metadata."""

    event_name: str | None = None
    ref: str | None = None
    sha: str | None = None
    repository: str | None = None
    api_url: str | None = None
    payload: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> ActionEnvironment:
        env = os.environ if environ is None else environ
        return cls(
            event_name=env.get("GITHUB_EVENT_NAME") or None,
            ref=env.get("GITHUB_REF") or None,
            sha=env.get("GITHUB_SHA") or None,
            repository=env.get("GITHUB_REPOSITORY") or None,
            api_url=env.get("GITHUB_API_URL") or None,
            payload=load_event_payload(env.get("GITHUB_EVENT_PATH")),
        )


@dataclass(frozen=True)
class ContextOverrides:
    """Explicit event-context values; empty strings count as absent."""

    ref: str | None = None
    event_name: str | None = None
    base_branch: str | None = None
    head_branch: str | None = None
    action: str | None = None


def load_event_payload(event_path: str | None) -> dict[str, Any]:
    """Load the webhook payload file, or an empty mapping when unset."""
    if not event_path:
        return {}
    path = Path(event_path)
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid JSON in event payload {path}: {e}") from e
    return data if isinstance(data, dict) else {}


def get_nested_string(source: Any, *keys: str) -> str | None:
    current = source
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current if isinstance(current, str) else None


def _first(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


def parse_owner_repo(remote: str) -> str | None:
    """Derive ``owner/repo`` from a github.com SSH or HTTPS remote URL."""
    ssh_match = re.match(r"^git@github\.com:(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$", remote)
    if ssh_match:
        return f"{ssh_match.group('owner')}/{ssh_match.group('repo')}"

    https_match = re.match(
        r"^https://(?:[^@/]+@)?github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$",
        remote,
    )
    if https_match:
        return f"{https_match.group('owner')}/{https_match.group('repo')}"

    return None


def _split_repository(value: str, source: str) -> Repository:
    owner, _, repo = value.strip().partition("/")
    if not owner or not repo or "/" in repo:
        raise InputError(f"{source} must be in the form \"owner/repo\", got {value!r}.")
    return Repository(owner=owner, repo=repo)


def resolve_repository(
    value: str | None,
    env: ActionEnvironment,
    repo_root: Path | None = None,
) -> Repository:
    """Resolve the repository from input, environment, or the origin remote."""
    if value:
        return _split_repository(value, "`repository` input")
    if env.repository:
        return _split_repository(env.repository, "GITHUB_REPOSITORY")
    if repo_root is not None:
        url = remote_url(repo_root)
        owner_repo = parse_owner_repo(url) if url else None
        if owner_repo:
            return _split_repository(owner_repo, "origin remote")
    raise InputError("Unable to determine repository; pass --repository owner/repo.")


def resolve_base_ref(value: str | None, env: ActionEnvironment) -> str | None:
    if value:
        return value
    if env.event_name in PULL_REQUEST_EVENTS:
        return get_nested_string(env.payload, "pull_request", "base", "sha")
    if env.event_name == "push":
        return get_nested_string(env.payload, "before")
    return None


def resolve_head_ref(value: str | None, env: ActionEnvironment) -> str | None:
    if value:
        return value
    if env.event_name in PULL_REQUEST_EVENTS:
        return get_nested_string(env.payload, "pull_request", "head", "sha")
    return env.sha


def resolve_diff_strategy(requested: str | None, event_name: str | None) -> DiffStrategy:
    """Pick two-dot for pushes and three-dot otherwise unless one is requested."""
    strategy = (requested or "auto").strip().lower()
    if strategy not in DIFF_STRATEGIES:
        raise InputError(f"Unsupported diff strategy: {requested}. Expected one of {sorted(DIFF_STRATEGIES)}.")
    if strategy == "two-dot":
        return "two-dot"
    if strategy == "three-dot":
        return "three-dot"
    return "two-dot" if event_name == "push" else "three-dot"


def build_event_context(env: ActionEnvironment, overrides: ContextOverrides | None = None) -> EventContext:
    """Derive the event context from overrides and the Actions environment."""
    overrides = overrides or ContextOverrides()
    payload = env.payload

    ref = _first(overrides.ref, env.ref)
    event_name = _first(overrides.event_name, env.event_name) or "push"
    base_branch = _first(
        overrides.base_branch,
        get_nested_string(payload, "pull_request", "base", "ref"),
        get_nested_string(payload, "merge_group", "base_ref"),
        get_nested_string(payload, "workflow_run", "head_branch"),
    )
    head_branch = _first(
        overrides.head_branch,
        get_nested_string(payload, "pull_request", "head", "ref"),
        get_nested_string(payload, "merge_group", "head_ref"),
    )
    action = _first(overrides.action, get_nested_string(payload, "action"))

    ref_name = ref.removeprefix("refs/") if ref else None
    tag_name = ref.removeprefix("refs/tags/") if ref and ref.startswith("refs/tags/") else None
    # A tag ref never doubles as a branch name.
    branch_name = ref.removeprefix("refs/heads/") if ref and not tag_name else None

    return EventContext(
        ref=ref,
        ref_name=ref_name,
        branch_name=branch_name,
        tag_name=tag_name,
        base_branch=base_branch,
        head_branch=head_branch,
        event_name=event_name,
        action=action,
    )
