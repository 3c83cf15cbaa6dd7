"""Unit tests for the end-to-end trigger check."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.unit.github_stubs import FakeGitHub, file_entry, file_payload
from triggercheck.context import ActionEnvironment, ContextOverrides, InputError
from triggercheck.run import RunOptions, missing_expectations, run_check

CI_WORKFLOW = """\
name: CI
on:
  push:
    paths: ["src/**"]
  workflow_dispatch:
jobs:
  build:
    runs-on: ubuntu-latest
"""

DOCS_WORKFLOW = """\
name: Docs
on:
  pull_request:
    paths: ["docs/**"]
jobs:
  docs:
    runs-on: ubuntu-latest
"""


def _github(compare_payload: dict) -> FakeGitHub:
    return FakeGitHub(
        compare_payload=compare_payload,
        contents={
            ".github/workflows": [
                file_entry(".github/workflows/ci.yml"),
                file_entry(".github/workflows/docs.yml"),
            ],
            ".github/workflows/ci.yml": file_payload(".github/workflows/ci.yml", CI_WORKFLOW),
            ".github/workflows/docs.yml": file_payload(".github/workflows/docs.yml", DOCS_WORKFLOW),
        },
    )


class _GitDiffStub:
    def __init__(self, output: str):
        self.output = output
        self.calls: list[tuple[str, Path]] = []

    def __call__(self, diff_range: str, repo_root: Path) -> str:
        self.calls.append((diff_range, repo_root))
        return self.output


def _no_git_diff(diff_range: str, repo_root: Path) -> str:
    raise AssertionError(f"unexpected git diff for {diff_range} in {repo_root}")


def test_run_check_push_event_from_environment(tmp_path: Path) -> None:
    github = _github({"files": [{"filename": "src/app.ts", "status": "modified"}], "total_files": 1})
    factory_calls: list[tuple[str, str | None]] = []

    def factory(token: str, api_url: str | None) -> FakeGitHub:
        factory_calls.append((token, api_url))
        return github

    env = ActionEnvironment(
        event_name="push",
        ref="refs/heads/main",
        sha="after-sha",
        repository="octo/example",
        api_url="https://ghe.example.com/api/v3",
        payload={"before": "before-sha"},
    )

    result = run_check(
        RunOptions(github_token="token", repo_root=tmp_path),
        env=env,
        client_factory=factory,
        git_diff=_no_git_diff,
    )

    assert factory_calls == [("token", "https://ghe.example.com/api/v3")]
    assert github.compare_calls[0][1] == "before-sha..after-sha"
    assert github.closed is True
    assert result.repository.full_name == "octo/example"
    assert result.workflow_ref == "after-sha"
    assert result.diff_strategy == "two-dot"
    assert result.changed_files.source == "api"
    assert [item.name for item in result.triggered] == ["CI"]
    assert result.report["workflows"][1]["autoTriggered"] is False
    assert {ref for _, ref in github.content_calls} == {"after-sha"}


def test_run_check_uses_git_fallback_when_truncated(tmp_path: Path) -> None:
    github = _github({"files": [{"filename": "src/app.ts", "status": "modified"}], "total_files": 400})
    git_diff = _GitDiffStub("M\tsrc/app.ts\nA\tdocs/new.md\n")

    result = run_check(
        RunOptions(
            github_token="token",
            repository="octo/example",
            base_ref="base",
            head_ref="head",
            workflow_ref="main",
            repo_root=tmp_path,
            overrides=ContextOverrides(event_name="pull_request", base_branch="main", action="opened"),
        ),
        env=ActionEnvironment(),
        client_factory=lambda token, api_url: github,
        git_diff=git_diff,
    )

    assert git_diff.calls == [("base...head", tmp_path.resolve())]
    assert result.changed_files.source == "git"
    assert result.report["changedFiles"]["truncated"] is False
    assert result.workflow_ref == "main"
    assert result.context.event_name == "pull_request"
    assert [item.name for item in result.triggered] == ["CI", "Docs"]


def test_run_check_requires_refs(tmp_path: Path) -> None:
    with pytest.raises(InputError, match="Both `base-ref` and `head-ref`"):
        run_check(
            RunOptions(github_token="token", repository="octo/example", repo_root=tmp_path),
            env=ActionEnvironment(event_name="workflow_dispatch"),
            client_factory=lambda token, api_url: _github({"files": []}),
            git_diff=_no_git_diff,
        )


def test_missing_expectations_matches_name_path_or_filename(tmp_path: Path) -> None:
    github = _github({"files": [{"filename": "src/app.ts", "status": "modified"}]})
    result = run_check(
        RunOptions(github_token="token", repository="octo/example", base_ref="a", head_ref="b", repo_root=tmp_path),
        env=ActionEnvironment(event_name="push", ref="refs/heads/main"),
        client_factory=lambda token, api_url: github,
        git_diff=_no_git_diff,
    )

    assert missing_expectations(result, ["CI", ".github/workflows/ci.yml", "ci.yml"]) == []
    assert missing_expectations(result, ["Docs", "CI"]) == ["Docs"]


@pytest.mark.parametrize(
    ("env_event", "override_event", "expected_range"),
    [
        ("pull_request", "push", "a..b"),
        ("push", "pull_request", "a...b"),
        ("push", None, "a..b"),
        (None, None, "a...b"),
    ],
)
def test_auto_diff_strategy_follows_effective_event(
    tmp_path: Path,
    env_event: str | None,
    override_event: str | None,
    expected_range: str,
) -> None:
    github = _github({"files": [{"filename": "src/app.ts", "status": "modified"}]})

    run_check(
        RunOptions(
            github_token="token",
            repository="octo/example",
            base_ref="a",
            head_ref="b",
            repo_root=tmp_path,
            overrides=ContextOverrides(event_name=override_event),
        ),
        env=ActionEnvironment(event_name=env_event),
        client_factory=lambda token, api_url: github,
        git_diff=_no_git_diff,
    )

    assert github.compare_calls[0][1] == expected_range

