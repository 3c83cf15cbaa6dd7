"""Shared fixtures for triggercheck tests."""

from __future__ import annotations

import pytest

from triggercheck.types import EventContext, Repository


@pytest.fixture
def repository() -> Repository:
    return Repository(owner="octo", repo="example")


@pytest.fixture
def push_context() -> EventContext:
    return EventContext(
        ref="refs/heads/main",
        ref_name="heads/main",
        branch_name="main",
        tag_name=None,
        base_branch="main",
        head_branch="feature/change",
        event_name="push",
        action="synchronize",
    )


@pytest.fixture
def pr_context() -> EventContext:
    return EventContext(
        ref="refs/pull/7/merge",
        ref_name="pull/7/merge",
        branch_name="refs/pull/7/merge",
        tag_name=None,
        base_branch="main",
        head_branch="feature/change",
        event_name="pull_request",
        action="synchronize",
    )
