"""End-to-end trigger check: resolve inputs, changed files, and workflow verdicts."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Protocol

from triggercheck.changed_files import get_changed_files
from triggercheck.context import (
    ActionEnvironment,
    ContextOverrides,
    InputError,
    build_event_context,
    resolve_base_ref,
    resolve_diff_strategy,
    resolve_head_ref,
    resolve_repository,
)
from triggercheck.git.commands import checkout_root, git_diff_name_status
from triggercheck.github.client import GitHubClient
from triggercheck.report import build_report, format_changed_file, format_workflow_assessment, summarize_list
from triggercheck.types import ChangedFilesResult, EventContext, Repository, WorkflowAssessment
from triggercheck.workflows import assess_workflows

logger = logging.getLogger(__name__)


class GitHubApi(Protocol):
    def compare_commits(self, repository: Repository, basehead: str, per_page: int = 100) -> Any: ...

    def get_content(self, repository: Repository, path: str, ref: str) -> Any: ...


ClientFactory = Callable[[str, str | None], GitHubApi]
GitDiffRunner = Callable[[str, Path], str]


@dataclass(frozen=True)
class RunOptions:
    """Inputs of one trigger check; empty values fall back to the Actions environment."""

    github_token: str = ""
    repository: str | None = None
    base_ref: str | None = None
    head_ref: str | None = None
    workflow_ref: str | None = None
    diff_strategy: str = "auto"
    api_url: str | None = None
    repo_root: Path = Path(".")
    overrides: ContextOverrides = field(default_factory=ContextOverrides)


@dataclass(frozen=True)
class RunResult:
    """Everything one trigger check produced."""

    repository: Repository
    base_ref: str
    head_ref: str
    workflow_ref: str
    diff_strategy: str
    context: EventContext
    changed_files: ChangedFilesResult
    assessments: tuple[WorkflowAssessment, ...]
    report: dict[str, Any]

    @property
    def triggered(self) -> list[WorkflowAssessment]:
        return [assessment for assessment in self.assessments if assessment.auto_triggered]


def _default_client(token: str, api_url: str | None) -> GitHubClient:
    return GitHubClient(token=token, api_url=api_url)


def _default_git_diff(diff_range: str, repo_root: Path) -> str:
    return git_diff_name_status(diff_range, repo_root=checkout_root(repo_root))


def run_check(
    options: RunOptions,
    *,
    env: ActionEnvironment | None = None,
    client_factory: ClientFactory = _default_client,
    git_diff: GitDiffRunner = _default_git_diff,
) -> RunResult:
    """Resolve the commit range and assess every workflow at the workflow ref.

    Raises:
        InputError: If repository, base or head ref cannot be determined
        RuntimeError: If a GitHub or git call fails
    """
    env = env if env is not None else ActionEnvironment.from_environ()
    repo_root = options.repo_root.resolve()

    repository = resolve_repository(options.repository, env, repo_root)
    base_ref = resolve_base_ref(options.base_ref, env)
    head_ref = resolve_head_ref(options.head_ref, env)
    if not base_ref or not head_ref:
        raise InputError("Both `base-ref` and `head-ref` must be provided or derivable from the event context.")
    workflow_ref = options.workflow_ref or head_ref
    diff_strategy = resolve_diff_strategy(options.diff_strategy, options.overrides.event_name or env.event_name)

    logger.info("Repository: %s", repository.full_name)
    logger.info("Base ref: %s", base_ref)
    logger.info("Head ref: %s", head_ref)
    logger.info("Workflow ref: %s", workflow_ref)
    logger.info("Diff strategy (requested: %s): %s", options.diff_strategy or "auto", diff_strategy)
    logger.info("GitHub event: %s", env.event_name or "n/a")

    client = client_factory(options.github_token, options.api_url or env.api_url)
    try:
        changed_files = get_changed_files(
            compare=partial(client.compare_commits, repository),
            git_diff=partial(git_diff, repo_root=repo_root),
            base_ref=base_ref,
            head_ref=head_ref,
            diff_strategy=diff_strategy,
        )
        _log_changed_files(changed_files)

        context = build_event_context(env, options.overrides)
        _log_context(context)

        assessments = assess_workflows(client, repository, workflow_ref, changed_files.files, context)
    finally:
        close = getattr(client, "close", None)
        if callable(close):
            close()

    triggered = [assessment for assessment in assessments if assessment.auto_triggered]
    logger.info("Evaluated %d workflow file(s).", len(assessments))
    if triggered:
        logger.info(
            "Triggered workflows (%d): %s",
            len(triggered),
            summarize_list([format_workflow_assessment(item) for item in triggered]),
        )
    elif assessments:
        logger.info("No workflows were automatically triggered.")

    report = build_report(
        repository=repository,
        base_ref=base_ref,
        head_ref=head_ref,
        workflow_ref=workflow_ref,
        diff_strategy=diff_strategy,
        changed_files=changed_files,
        assessments=assessments,
    )
    return RunResult(
        repository=repository,
        base_ref=base_ref,
        head_ref=head_ref,
        workflow_ref=workflow_ref,
        diff_strategy=diff_strategy,
        context=context,
        changed_files=changed_files,
        assessments=tuple(assessments),
        report=report,
    )


def _log_changed_files(result: ChangedFilesResult) -> None:
    logger.info("Resolved %d file(s) using %s diff", len(result.files), result.source.upper())
    if result.source == "git":
        logger.info("Fell back to local git diff to avoid API truncation.")
    if result.files:
        logger.info("Files: %s", summarize_list([format_changed_file(item) for item in result.files]))
    else:
        logger.info("No changed files detected.")


def _log_context(context: EventContext) -> None:
    logger.info("Evaluating event: %s", context.event_name)
    logger.info("Ref: %s", context.ref or "unknown")
    logger.info("Branch: %s", context.branch_name or "n/a")
    logger.info("Base branch: %s", context.base_branch or "n/a")
    logger.info("Head branch: %s", context.head_branch or "n/a")
    if context.action:
        logger.info("Action: %s", context.action)


def missing_expectations(result: RunResult, expected: Sequence[str]) -> list[str]:
    """Return the expected workflow names or paths that were not auto-triggered."""
    triggered_keys: set[str] = set()
    for assessment in result.triggered:
        triggered_keys.update({assessment.name, assessment.path, assessment.path.rsplit("/", 1)[-1]})
    return [item for item in expected if item not in triggered_keys]
