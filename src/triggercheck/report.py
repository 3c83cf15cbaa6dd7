"""Run report assembly and rendering (JSON, markdown, GitHub Actions outputs)."""

from __future__ import annotations

import json
import uuid
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from triggercheck.types import ChangedFile, ChangedFilesResult, Repository, WorkflowAssessment

REPORT_JSON = "TRIGGER_REPORT.json"
REPORT_MD = "TRIGGER_REPORT.md"


def summarize_list(items: Sequence[str], max_items: int = 10) -> str:
    """Join ``items`` for log lines, eliding everything past ``max_items``."""
    if not items:
        return "none"
    visible = list(items[:max_items])
    remainder = len(items) - len(visible)
    if remainder > 0:
        return f"{', '.join(visible)}, …(+{remainder} more)"
    return ", ".join(visible)


def format_changed_file(item: ChangedFile) -> str:
    if item.status == "renamed" and item.previous_path:
        return f"renamed {item.previous_path} -> {item.path}"
    return f"{item.status} {item.path}"


def format_workflow_assessment(assessment: WorkflowAssessment) -> str:
    events = assessment.matched_events
    suffix = f" [{', '.join(events)}]" if events else ""
    return f"{assessment.name} ({assessment.path}){suffix}"


def build_report(
    *,
    repository: Repository,
    base_ref: str,
    head_ref: str,
    workflow_ref: str,
    diff_strategy: str,
    changed_files: ChangedFilesResult,
    assessments: Sequence[WorkflowAssessment],
) -> dict[str, Any]:
    """Assemble the caller-facing run report."""
    return {
        "repository": repository.to_dict(),
        "baseRef": base_ref,
        "headRef": head_ref,
        "workflowRef": workflow_ref,
        "diffStrategy": diff_strategy,
        "changedFiles": changed_files.to_dict(),
        "workflows": [assessment.to_dict() for assessment in assessments],
    }


def _trigger_cell(assessment: WorkflowAssessment) -> str:
    lines = []
    for trigger in assessment.triggers:
        if trigger.matches:
            lines.append(f"✅ {trigger.event}")
        else:
            reason = "; ".join(trigger.reasons) or "Not triggered"
            lines.append(f"❌ {trigger.event}: {reason}")
    if assessment.errors:
        lines.append(f"⚠️ {'; '.join(assessment.errors)}")
    # Table cells cannot hold raw newlines or pipes.
    return "<br>".join(lines).replace("|", "\\|")


def render_summary_markdown(
    assessments: Sequence[WorkflowAssessment],
    changed_files_count: int,
    triggered_count: int,
) -> str:
    """Render the job-summary markdown: counts plus one table row per workflow."""
    lines = [
        "## Workflow Trigger Assessment",
        "",
        f"Changed files analysed: **{changed_files_count}**",
        f"Workflows automatically triggered: **{triggered_count}**",
        "",
    ]
    if assessments:
        lines.extend(
            [
                "| Workflow | Triggered | Reasons / Matched Files |",
                "| --- | --- | --- |",
            ]
        )
        for assessment in assessments:
            triggered = "Yes" if assessment.auto_triggered else "No"
            name = assessment.name.replace("|", "\\|")
            lines.append(f"| {name} | {triggered} | {_trigger_cell(assessment)} |")
        lines.append("")
    return "\n".join(lines) + "\n"


def render_report_markdown(report: Mapping[str, Any], assessments: Sequence[WorkflowAssessment]) -> str:
    """Render the full markdown report written next to the JSON report."""
    repository = report["repository"]
    changed = report["changedFiles"]
    triggered = [assessment for assessment in assessments if assessment.auto_triggered]

    lines = [
        "# TRIGGER_REPORT",
        "",
        f"- repository: {repository['owner']}/{repository['repo']}",
        f"- base_ref: {report['baseRef']}",
        f"- head_ref: {report['headRef']}",
        f"- workflow_ref: {report['workflowRef']}",
        f"- diff_strategy: {report['diffStrategy']}",
        f"- changed_files_source: {changed['source']}",
        f"- changed_files: {len(changed['files'])}",
        f"- workflows_evaluated: {len(assessments)}",
        f"- workflows_triggered: {len(triggered)}",
        "",
        "## Changed Files",
        "",
    ]
    if changed["files"]:
        for item in changed["files"]:
            if item.get("previousPath"):
                lines.append(f"- {item['status']} `{item['previousPath']}` -> `{item['path']}`")
            else:
                lines.append(f"- {item['status']} `{item['path']}`")
    else:
        lines.append("- none")

    lines.extend(["", "## Workflows", ""])
    for assessment in assessments:
        marker = "✅" if assessment.auto_triggered else "❌"
        lines.append(f"### {marker} {assessment.name}")
        lines.append("")
        lines.append(f"- path: `{assessment.path}`")
        for trigger in assessment.triggers:
            status = "matched" if trigger.matches else "not matched"
            lines.append(f"- {trigger.event}: {status}")
            for reason in trigger.reasons:
                lines.append(f"  - {reason}")
            if trigger.matched_files:
                lines.append(f"  - matched files: {summarize_list(list(trigger.matched_files))}")
        for error in assessment.errors:
            lines.append(f"- error: {error}")
        lines.append("")

    return "\n".join(lines)


def write_reports(out_dir: Path, report: Mapping[str, Any], assessments: Sequence[WorkflowAssessment]) -> Path:
    """Write TRIGGER_REPORT.json and TRIGGER_REPORT.md into ``out_dir``."""
    out_dir.mkdir(parents=True, exist_ok=True)

    json_path = out_dir / REPORT_JSON
    json_path.write_text(f"{json.dumps(report, indent=2, sort_keys=True)}\n", encoding="utf-8")
    (out_dir / REPORT_MD).write_text(render_report_markdown(report, assessments), encoding="utf-8")
    return json_path


def write_action_outputs(output_path: Path, outputs: Mapping[str, str]) -> None:
    """Append step outputs to the GITHUB_OUTPUT file using heredoc delimiters."""
    with open(output_path, "a", encoding="utf-8") as f:
        for name, value in outputs.items():
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")


def append_step_summary(summary_path: Path, markdown: str) -> None:
    """Append markdown to the GITHUB_STEP_SUMMARY file."""
    with open(summary_path, "a", encoding="utf-8") as f:
        f.write(markdown)


def action_outputs(
    report: Mapping[str, Any],
    changed_files: ChangedFilesResult,
    assessments: Sequence[WorkflowAssessment],
) -> dict[str, str]:
    """Build the ``changed-files`` / ``triggered-workflows`` / ``report`` outputs."""
    triggered = [assessment.to_dict() for assessment in assessments if assessment.auto_triggered]
    return {
        "changed-files": json.dumps([item.to_dict() for item in changed_files.files]),
        "triggered-workflows": json.dumps(triggered),
        "report": json.dumps(report),
    }
