"""Core types for changed-file resolution and trigger assessment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

FileStatus = Literal["added", "modified", "removed", "renamed"]
ChangedFilesSource = Literal["api", "git"]
DiffStrategy = Literal["two-dot", "three-dot"]
FilterKind = Literal["branches", "paths", "tags", "types"]


@dataclass(frozen=True)
class Repository:
    """Hosted repository identity."""

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def to_dict(self) -> dict[str, str]:
        return {"owner": self.owner, "repo": self.repo}


@dataclass(frozen=True)
class ChangedFile:
    """One touched path in a commit range. Paths always use forward slashes."""

    path: str
    status: FileStatus
    previous_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"path": self.path, "status": self.status}
        if self.previous_path is not None:
            payload["previousPath"] = self.previous_path
        return payload


@dataclass(frozen=True)
class ChangedFilesResult:
    """Resolved changed-file list and where it came from."""

    files: tuple[ChangedFile, ...]
    source: ChangedFilesSource
    truncated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": [item.to_dict() for item in self.files],
            "source": self.source,
            "truncated": self.truncated,
        }


@dataclass(frozen=True)
class EventContext:
    """Event metadata the trigger filters are evaluated against.

    ``tag_name`` and ``branch_name`` are derived from the same ref by prefix,
    so at most one of them describes a real branch or tag.
    """

    ref: str | None
    ref_name: str | None
    branch_name: str | None
    tag_name: str | None
    base_branch: str | None
    head_branch: str | None
    event_name: str
    action: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ref": self.ref,
            "refName": self.ref_name,
            "branchName": self.branch_name,
            "tagName": self.tag_name,
            "baseBranch": self.base_branch,
            "headBranch": self.head_branch,
            "eventName": self.event_name,
            "action": self.action,
        }


@dataclass(frozen=True)
class FilterVerdict:
    """Outcome of a single filter evaluation."""

    matches: bool
    matched_files: tuple[str, ...] = ()
    reasons: tuple[str, ...] = ()

    @property
    def reason(self) -> str | None:
        return self.reasons[0] if self.reasons else None


@dataclass(frozen=True)
class TriggerEvaluation:
    """Verdict for one declared trigger event of a workflow."""

    event: str
    matches: bool
    reasons: tuple[str, ...] = ()
    matched_files: tuple[str, ...] = ()
    evaluated_filters: frozenset[FilterKind] = field(default_factory=frozenset)
    # Filter kinds whose value was present but had no patterns configured.
    unfiltered_filters: frozenset[FilterKind] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        filters = {kind: False for kind in self.unfiltered_filters}
        filters.update({kind: True for kind in self.evaluated_filters})
        return {
            "event": self.event,
            "matches": self.matches,
            "reasons": list(self.reasons),
            "matchedFiles": list(self.matched_files),
            "evaluatedFilters": dict(sorted(filters.items())),
        }


@dataclass(frozen=True)
class WorkflowAssessment:
    """Aggregated trigger verdicts for one workflow document."""

    name: str
    path: str
    triggers: tuple[TriggerEvaluation, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def auto_triggered(self) -> bool:
        return any(trigger.matches for trigger in self.triggers)

    @property
    def matched_events(self) -> list[str]:
        return [trigger.event for trigger in self.triggers if trigger.matches]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "triggers": [trigger.to_dict() for trigger in self.triggers],
            "autoTriggered": self.auto_triggered,
            "errors": list(self.errors),
        }
