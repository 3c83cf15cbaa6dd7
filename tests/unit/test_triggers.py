"""Unit tests for trigger parsing and evaluation."""

from __future__ import annotations

from dataclasses import replace

from triggercheck.triggers import (
    ExternalCallTrigger,
    ManualTrigger,
    MergeGroupTrigger,
    OtherTrigger,
    PullRequestTrigger,
    PushTrigger,
    WorkflowTemplate,
    evaluate_trigger,
    evaluate_workflow_triggers,
    parse_trigger,
    parse_triggers,
    string_list,
)
from triggercheck.types import EventContext


def test_string_list_coercion() -> None:
    assert string_list(None) == ()
    assert string_list("main") == ("main",)
    assert string_list(["main", 3, "dev"]) == ("main", "dev")
    assert string_list({"main": True}) == ()


def test_parse_trigger_builds_variants() -> None:
    assert parse_trigger("push", {"branches": "main", "paths-ignore": ["docs/**"]}) == PushTrigger(
        branches=("main",),
        paths_ignore=("docs/**",),
    )
    assert parse_trigger("pull_request_target", {"types": ["opened"]}) == PullRequestTrigger(
        event="pull_request_target",
        types=("opened",),
    )
    assert parse_trigger("merge_group", None) == MergeGroupTrigger()
    assert parse_trigger("workflow_dispatch", {"inputs": {}}) == ManualTrigger()
    assert parse_trigger("workflow_call", None) == ExternalCallTrigger()
    assert parse_trigger("schedule", [{"cron": "0 0 * * *"}]) == OtherTrigger(event="schedule")


def test_parse_triggers_keeps_declared_order() -> None:
    triggers = parse_triggers({"workflow_dispatch": None, "push": None, "pull_request": None})

    assert [trigger.event for trigger in triggers] == ["workflow_dispatch", "push", "pull_request"]


def test_push_paths_and_paths_ignore(push_context: EventContext) -> None:
    trigger = PushTrigger(paths=("src/**",), paths_ignore=("src/generated/**",))

    evaluation = evaluate_trigger(trigger, ["src/generated/x.ts", "src/app.ts"], push_context)

    assert evaluation.matches is True
    assert evaluation.matched_files == ("src/app.ts",)
    assert evaluation.evaluated_filters == frozenset({"paths"})
    assert evaluation.reasons == ()


def test_push_without_filters_matches_any_change(push_context: EventContext) -> None:
    evaluation = evaluate_trigger(PushTrigger(), ["README.md"], push_context)

    assert evaluation.matches is True
    assert evaluation.matched_files == ("README.md",)
    assert evaluation.evaluated_filters == frozenset()


def test_push_branch_filter_uses_pushed_branch(push_context: EventContext) -> None:
    trigger = PushTrigger(branches=("release/**",))

    evaluation = evaluate_trigger(trigger, ["src/app.ts"], push_context)

    assert evaluation.matches is False
    assert evaluation.reasons == ('Branch "main" did not satisfy `branches` filter.',)
    assert evaluation.evaluated_filters == frozenset({"branches"})


def test_push_collects_every_failing_reason(push_context: EventContext) -> None:
    trigger = PushTrigger(branches_ignore=("main",), paths=("src/**",))

    evaluation = evaluate_trigger(trigger, ["docs/guide.md"], push_context)

    assert evaluation.matches is False
    assert evaluation.reasons == (
        'Branch "main" was excluded by `branches-ignore` filter.',
        "No changed files satisfied `paths` filter.",
    )
    assert evaluation.evaluated_filters == frozenset({"branches", "paths"})


def test_push_tag_filters_apply_only_to_tag_refs(push_context: EventContext) -> None:
    trigger = PushTrigger(tags=("v*",))

    on_branch = evaluate_trigger(trigger, ["src/app.ts"], push_context)
    assert on_branch.matches is True
    assert "tags" not in on_branch.evaluated_filters

    tag_context = replace(push_context, ref="refs/tags/nightly", ref_name="tags/nightly", branch_name=None, tag_name="nightly")
    on_tag = evaluate_trigger(trigger, ["src/app.ts"], tag_context)
    assert on_tag.matches is False
    assert on_tag.reasons == ('Tag "nightly" did not satisfy `tags` filter.',)
    assert on_tag.evaluated_filters == frozenset({"tags"})


def test_push_tag_without_tag_filters_is_recorded_as_unfiltered(push_context: EventContext) -> None:
    tag_context = replace(push_context, ref="refs/tags/v1.0.0", ref_name="tags/v1.0.0", branch_name=None, tag_name="v1.0.0")

    evaluation = evaluate_trigger(PushTrigger(paths=("src/**",)), ["src/app.ts"], tag_context)

    assert evaluation.matches is True
    assert evaluation.unfiltered_filters == frozenset({"tags"})
    assert evaluation.to_dict()["evaluatedFilters"] == {"paths": True, "tags": False}

    on_branch = evaluate_trigger(PushTrigger(), ["src/app.ts"], push_context)
    assert on_branch.unfiltered_filters == frozenset()
    assert on_branch.to_dict()["evaluatedFilters"] == {}


def test_pull_request_types_reject_other_actions(pr_context: EventContext) -> None:
    trigger = PullRequestTrigger(types=("opened",))

    evaluation = evaluate_trigger(trigger, ["src/app.ts"], pr_context)

    assert evaluation.matches is False
    assert any("types" in reason for reason in evaluation.reasons)
    assert evaluation.evaluated_filters == frozenset({"types"})
    assert evaluation.matched_files == ("src/app.ts",)


def test_pull_request_branches_use_base_branch(pr_context: EventContext) -> None:
    matching = evaluate_trigger(PullRequestTrigger(branches=("main",)), ["src/app.ts"], pr_context)
    assert matching.matches is True

    rejecting = evaluate_trigger(PullRequestTrigger(branches=("feature/**",)), ["src/app.ts"], pr_context)
    assert rejecting.matches is False
    assert rejecting.reasons == ('Branch "main" did not satisfy `branches` filter.',)


def test_pull_request_without_base_branch(pr_context: EventContext) -> None:
    context = replace(pr_context, base_branch=None)

    evaluation = evaluate_trigger(PullRequestTrigger(branches=("main",)), ["src/app.ts"], context)

    assert evaluation.matches is False
    assert evaluation.reasons == ("Branch information unavailable to evaluate filters.",)


def test_pull_request_paths_and_types_together(pr_context: EventContext) -> None:
    trigger = PullRequestTrigger(event="pull_request_target", paths=("src/**",), types=("synchronize", "opened"))

    evaluation = evaluate_trigger(trigger, ["docs/guide.md", "src/app.ts"], pr_context)

    assert evaluation.event == "pull_request_target"
    assert evaluation.matches is True
    assert evaluation.matched_files == ("src/app.ts",)
    assert evaluation.evaluated_filters == frozenset({"paths", "types"})


def test_merge_group_matches_regardless_of_paths(push_context: EventContext) -> None:
    evaluation = evaluate_trigger(MergeGroupTrigger(), ["docs/unrelated.md"], push_context)

    assert evaluation.matches is True
    assert evaluation.reasons == ()
    assert evaluation.matched_files == ()
    assert evaluation.evaluated_filters == frozenset()


def test_merge_group_types_filter(push_context: EventContext) -> None:
    context = replace(push_context, action="checks_requested")

    assert evaluate_trigger(MergeGroupTrigger(types=("checks_requested",)), ["a"], context).matches is True

    missing_action = evaluate_trigger(MergeGroupTrigger(types=("checks_requested",)), ["a"], replace(context, action=None))
    assert missing_action.matches is False
    assert missing_action.evaluated_filters == frozenset({"types"})


def test_non_file_events_never_match(push_context: EventContext) -> None:
    dispatch = evaluate_trigger(ManualTrigger(), ["src/app.ts"], push_context)
    assert dispatch.matches is False
    assert dispatch.reasons == ("Event requires manual invocation and does not respond to file changes.",)

    call = evaluate_trigger(ExternalCallTrigger(), ["src/app.ts"], push_context)
    assert call.matches is False
    assert call.reasons == ("Triggered by other workflows",)

    schedule = evaluate_trigger(OtherTrigger(event="schedule"), ["src/app.ts"], push_context)
    assert schedule.event == "schedule"
    assert schedule.matches is False
    assert schedule.reasons == ("Event runs independently of repository file changes.",)


def test_workflow_triggers_without_changed_paths(push_context: EventContext) -> None:
    template = WorkflowTemplate(name="CI", triggers=(PushTrigger(), MergeGroupTrigger()))

    evaluations = evaluate_workflow_triggers(template, [], push_context)

    assert len(evaluations) == 1
    assert evaluations[0].event == "unknown"
    assert evaluations[0].matches is False
    assert evaluations[0].reasons == ("No changed files were provided for evaluation.",)


def test_workflow_triggers_follow_declared_order(push_context: EventContext) -> None:
    template = WorkflowTemplate(
        name="CI",
        triggers=(ManualTrigger(), PushTrigger(paths=("src/**",)), OtherTrigger(event="schedule")),
    )

    evaluations = evaluate_workflow_triggers(template, ["src/app.ts"], push_context)

    assert [item.event for item in evaluations] == ["workflow_dispatch", "push", "schedule"]
    assert [item.matches for item in evaluations] == [False, True, False]


def test_workflow_without_triggers_yields_no_evaluations(push_context: EventContext) -> None:
    assert evaluate_workflow_triggers(WorkflowTemplate(name="Empty"), ["src/app.ts"], push_context) == []
