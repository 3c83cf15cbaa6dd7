"""Trigger assessment engine.

Each event declared in a workflow's ``on:`` section is parsed into one
variant of :data:`TriggerConfig` holding only the filters that event kind
supports, then evaluated against the changed paths and the event context.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from triggercheck.patterns import (
    evaluate_branch_filters,
    evaluate_path_filters,
    evaluate_tag_filters,
    evaluate_types_filter,
)
from triggercheck.types import EventContext, FilterKind, TriggerEvaluation

PULL_REQUEST_EVENTS = ("pull_request", "pull_request_target")
MANUAL_EVENTS = ("workflow_dispatch",)
EXTERNAL_EVENTS = ("workflow_call",)


@dataclass(frozen=True)
class PushTrigger:
    branches: tuple[str, ...] = ()
    branches_ignore: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    tags_ignore: tuple[str, ...] = ()
    paths: tuple[str, ...] = ()
    paths_ignore: tuple[str, ...] = ()
    event: Literal["push"] = "push"


@dataclass(frozen=True)
class PullRequestTrigger:
    """``pull_request`` or its forked-repository ``pull_request_target`` form."""

    event: Literal["pull_request", "pull_request_target"] = "pull_request"
    branches: tuple[str, ...] = ()
    branches_ignore: tuple[str, ...] = ()
    paths: tuple[str, ...] = ()
    paths_ignore: tuple[str, ...] = ()
    types: tuple[str, ...] = ()


@dataclass(frozen=True)
class MergeGroupTrigger:
    types: tuple[str, ...] = ()
    event: Literal["merge_group"] = "merge_group"


@dataclass(frozen=True)
class ManualTrigger:
    event: str = "workflow_dispatch"


@dataclass(frozen=True)
class ExternalCallTrigger:
    event: str = "workflow_call"


@dataclass(frozen=True)
class OtherTrigger:
    event: str


TriggerConfig = (
    PushTrigger
    | PullRequestTrigger
    | MergeGroupTrigger
    | ManualTrigger
    | ExternalCallTrigger
    | OtherTrigger
)


@dataclass(frozen=True)
class WorkflowTemplate:
    """Structured trigger template of one workflow document."""

    name: str | None = None
    triggers: tuple[TriggerConfig, ...] = ()


def string_list(value: Any) -> tuple[str, ...]:
    """Coerce a raw filter value into a tuple of strings.

    A single string is one pattern; non-string list items are dropped;
    anything else counts as no filter.
    """
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list | tuple):
        return tuple(item for item in value if isinstance(item, str))
    return ()


def parse_trigger(event: str, raw: Any) -> TriggerConfig:
    """Build the configuration variant for ``event`` from its raw mapping."""
    config: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    if event == "push":
        return PushTrigger(
            branches=string_list(config.get("branches")),
            branches_ignore=string_list(config.get("branches-ignore")),
            tags=string_list(config.get("tags")),
            tags_ignore=string_list(config.get("tags-ignore")),
            paths=string_list(config.get("paths")),
            paths_ignore=string_list(config.get("paths-ignore")),
        )
    if event in PULL_REQUEST_EVENTS:
        return PullRequestTrigger(
            event=event,  # type: ignore[arg-type]
            branches=string_list(config.get("branches")),
            branches_ignore=string_list(config.get("branches-ignore")),
            paths=string_list(config.get("paths")),
            paths_ignore=string_list(config.get("paths-ignore")),
            types=string_list(config.get("types")),
        )
    if event == "merge_group":
        return MergeGroupTrigger(types=string_list(config.get("types")))
    if event in MANUAL_EVENTS:
        return ManualTrigger(event=event)
    if event in EXTERNAL_EVENTS:
        return ExternalCallTrigger(event=event)
    return OtherTrigger(event=event)


def parse_triggers(events: Mapping[str, Any]) -> tuple[TriggerConfig, ...]:
    """Parse an event-name -> raw-config mapping, keeping declared order."""
    return tuple(parse_trigger(str(event), raw) for event, raw in events.items())


def _evaluate_push(trigger: PushTrigger, changed_paths: Sequence[str], context: EventContext) -> TriggerEvaluation:
    reasons: list[str] = []
    evaluated: set[FilterKind] = set()
    unfiltered: set[FilterKind] = set()
    matches = True

    if trigger.branches or trigger.branches_ignore:
        evaluated.add("branches")
        verdict = evaluate_branch_filters(context.branch_name, trigger.branches, trigger.branches_ignore)
        if not verdict.matches:
            matches = False
            reasons.append(verdict.reason or "Branch filter did not match.")

    if context.tag_name and not (trigger.tags or trigger.tags_ignore):
        unfiltered.add("tags")
    elif context.tag_name:
        evaluated.add("tags")
        verdict = evaluate_tag_filters(context.tag_name, trigger.tags, trigger.tags_ignore)
        if not verdict.matches:
            matches = False
            reasons.append(verdict.reason or "Tag filter did not match.")

    if trigger.paths or trigger.paths_ignore:
        evaluated.add("paths")
    path_verdict = evaluate_path_filters(changed_paths, trigger.paths, trigger.paths_ignore)
    if not path_verdict.matches:
        matches = False
        reasons.extend(path_verdict.reasons)

    return TriggerEvaluation(
        event=trigger.event,
        matches=matches,
        reasons=tuple(reasons),
        matched_files=path_verdict.matched_files,
        evaluated_filters=frozenset(evaluated),
        unfiltered_filters=frozenset(unfiltered),
    )


def _evaluate_pull_request(
    trigger: PullRequestTrigger,
    changed_paths: Sequence[str],
    context: EventContext,
) -> TriggerEvaluation:
    reasons: list[str] = []
    evaluated: set[FilterKind] = set()
    matches = True

    # Pull request branch filters apply to the base branch, not the source branch.
    if trigger.branches or trigger.branches_ignore:
        evaluated.add("branches")
        verdict = evaluate_branch_filters(context.base_branch, trigger.branches, trigger.branches_ignore)
        if not verdict.matches:
            matches = False
            reasons.append(verdict.reason or "Base branch did not match filters.")

    if trigger.paths or trigger.paths_ignore:
        evaluated.add("paths")
    path_verdict = evaluate_path_filters(changed_paths, trigger.paths, trigger.paths_ignore)
    if not path_verdict.matches:
        matches = False
        reasons.extend(path_verdict.reasons)

    if trigger.types:
        evaluated.add("types")
        verdict = evaluate_types_filter(context.action, trigger.types)
        if not verdict.matches:
            matches = False
            reasons.append(verdict.reason or "`types` filter did not include this event action.")

    return TriggerEvaluation(
        event=trigger.event,
        matches=matches,
        reasons=tuple(reasons),
        matched_files=path_verdict.matched_files,
        evaluated_filters=frozenset(evaluated),
    )


def _evaluate_merge_group(trigger: MergeGroupTrigger, context: EventContext) -> TriggerEvaluation:
    verdict = evaluate_types_filter(context.action, trigger.types)
    reasons: tuple[str, ...] = ()
    if not verdict.matches:
        reasons = (verdict.reason or "`types` filter did not include this event action.",)
    return TriggerEvaluation(
        event=trigger.event,
        matches=verdict.matches,
        reasons=reasons,
        evaluated_filters=frozenset({"types"}) if trigger.types else frozenset(),
    )


def _never_matches(event: str, reason: str) -> TriggerEvaluation:
    return TriggerEvaluation(event=event, matches=False, reasons=(reason,))


def evaluate_trigger(
    trigger: TriggerConfig,
    changed_paths: Sequence[str],
    context: EventContext,
) -> TriggerEvaluation:
    """Evaluate one declared trigger event."""
    if isinstance(trigger, PushTrigger):
        return _evaluate_push(trigger, changed_paths, context)
    if isinstance(trigger, PullRequestTrigger):
        return _evaluate_pull_request(trigger, changed_paths, context)
    if isinstance(trigger, MergeGroupTrigger):
        return _evaluate_merge_group(trigger, context)
    if isinstance(trigger, ManualTrigger):
        return _never_matches(
            trigger.event,
            "Event requires manual invocation and does not respond to file changes.",
        )
    if isinstance(trigger, ExternalCallTrigger):
        return _never_matches(trigger.event, "Triggered by other workflows")
    return _never_matches(trigger.event, "Event runs independently of repository file changes.")


def evaluate_workflow_triggers(
    template: WorkflowTemplate,
    changed_paths: Sequence[str],
    context: EventContext,
) -> list[TriggerEvaluation]:
    """Evaluate every declared trigger of ``template``, in declared order.

    Without changed paths there is nothing to assess, so a single synthetic
    ``unknown`` evaluation is returned instead.
    """
    if not changed_paths:
        return [
            TriggerEvaluation(
                event="unknown",
                matches=False,
                reasons=("No changed files were provided for evaluation.",),
            )
        ]

    return [evaluate_trigger(trigger, changed_paths, context) for trigger in template.triggers]
