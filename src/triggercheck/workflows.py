"""Workflow document discovery, parsing and per-workflow assessment."""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import yaml

from triggercheck.changed_files import normalize_path
from triggercheck.github.client import GitHubNotFoundError
from triggercheck.report import summarize_list
from triggercheck.triggers import WorkflowTemplate, evaluate_workflow_triggers, parse_triggers
from triggercheck.types import ChangedFile, EventContext, Repository, WorkflowAssessment

logger = logging.getLogger(__name__)

WORKFLOWS_ROOT = ".github/workflows"
WORKFLOW_SUFFIXES = (".yml", ".yaml")
MAX_DISCOVERY_DEPTH = 8


class ContentClient(Protocol):
    def get_content(self, repository: Repository, path: str, ref: str) -> Any: ...


@dataclass(frozen=True)
class WorkflowDocument:
    """Raw workflow document fetched from the repository."""

    name: str
    path: str
    content: str
    errors: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ParsedWorkflow:
    """Parser outcome: a template (absent when unparseable) and error messages."""

    template: WorkflowTemplate | None
    errors: tuple[str, ...] = field(default_factory=tuple)


def is_workflow_file(filename: str) -> bool:
    return filename.endswith(WORKFLOW_SUFFIXES)


def decode_content(content: str, encoding: str | None) -> str:
    """Decode a contents-API payload body.

    Bytes that are not valid UTF-8 become U+FFFD.

    Raises:
        ValueError: If a base64 body cannot be decoded at all
    """
    if encoding != "base64":
        return content
    try:
        raw = base64.b64decode(content)
    except binascii.Error as exc:
        raise ValueError(f"Unable to decode base64 workflow content: {exc}") from exc
    return raw.decode("utf-8", errors="replace")


def _build_document(name: str, path: str, payload: Mapping[str, Any]) -> WorkflowDocument:
    try:
        content = decode_content(payload["content"], payload.get("encoding"))
    except ValueError as exc:
        return WorkflowDocument(name=name, path=path, content="", errors=(f"{name}: {exc}",))
    return WorkflowDocument(name=name, path=path, content=content)


def _normalize_events(value: Any) -> Mapping[Any, Any] | None:
    if isinstance(value, str):
        return {value: None}
    if isinstance(value, list):
        return {item: None for item in value if isinstance(item, str)}
    if isinstance(value, Mapping):
        return value
    return None


def parse_workflow_document(name: str, content: str) -> ParsedWorkflow:
    """Parse workflow YAML into a trigger template.

    Only trigger-relevant fields are interpreted. Problems are reported as
    error messages, never raised.
    """
    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        return ParsedWorkflow(template=None, errors=(f"Workflow failed to parse: {exc}",))

    if not isinstance(document, Mapping):
        return ParsedWorkflow(template=None, errors=("Workflow failed to parse: document is not a mapping.",))

    errors: list[str] = []
    raw_name = document.get("name")
    workflow_name = raw_name if isinstance(raw_name, str) and raw_name else None

    # YAML 1.1 loads a bare `on` key as boolean True.
    if "on" in document:
        raw_events = document["on"]
    elif True in document:
        raw_events = document[True]
    else:
        raw_events = None
        errors.append(f"{name}: Required property is missing: on")

    events = _normalize_events(raw_events) if raw_events is not None else {}
    if events is None:
        errors.append(f"{name}: Unexpected value for 'on'")
        events = {}

    if "jobs" not in document:
        errors.append(f"{name}: Required property is missing: jobs")

    template = WorkflowTemplate(name=workflow_name, triggers=parse_triggers(events))
    return ParsedWorkflow(template=template, errors=tuple(errors))


def discover_workflow_files(
    client: ContentClient,
    repository: Repository,
    ref: str,
    root: str = WORKFLOWS_ROOT,
    max_depth: int = MAX_DISCOVERY_DEPTH,
) -> list[WorkflowDocument]:
    """Collect workflow documents below ``root`` at ``ref``.

    Directories are walked depth-first with an explicit stack so results
    follow listing order. A missing directory or file is skipped; every other
    client error propagates.
    """
    documents: list[WorkflowDocument] = []
    # Stack items: (path, depth, directory entry or None for a directory probe)
    stack: list[tuple[str, int, Mapping[str, Any] | None]] = [(root, 0, None)]

    while stack:
        path, depth, entry = stack.pop()

        if entry is not None:
            document = _fetch_document(client, repository, ref, entry)
            if document is not None:
                documents.append(document)
            continue

        try:
            data = client.get_content(repository, path, ref)
        except GitHubNotFoundError:
            logger.info("No workflows found at %s for ref %s.", path, ref)
            continue

        if isinstance(data, list):
            pending: list[tuple[str, int, Mapping[str, Any] | None]] = []
            for item in data:
                if _is_file_entry(item) and is_workflow_file(item["name"]):
                    pending.append((item["path"], depth, item))
                elif _is_dir_entry(item):
                    if depth + 1 > max_depth:
                        logger.warning("Skipping %s: deeper than %d levels.", item["path"], max_depth)
                        continue
                    pending.append((item["path"], depth + 1, None))
            stack.extend(reversed(pending))
        elif _is_file_entry(data) and isinstance(data.get("content"), str) and is_workflow_file(data["name"]):
            documents.append(_build_document(data["name"], data["path"], data))

    return documents


def _fetch_document(
    client: ContentClient,
    repository: Repository,
    ref: str,
    entry: Mapping[str, Any],
) -> WorkflowDocument | None:
    try:
        resolved = client.get_content(repository, entry["path"], ref)
    except GitHubNotFoundError:
        logger.info("Workflow %s not found for ref %s.", entry["path"], ref)
        return None
    if not _is_file_entry(resolved) or not isinstance(resolved.get("content"), str):
        return None
    return _build_document(entry["name"], entry["path"], resolved)


def _is_file_entry(entry: Any) -> bool:
    return (
        isinstance(entry, Mapping)
        and entry.get("type") == "file"
        and isinstance(entry.get("name"), str)
        and isinstance(entry.get("path"), str)
    )


def _is_dir_entry(entry: Any) -> bool:
    return isinstance(entry, Mapping) and entry.get("type") == "dir" and isinstance(entry.get("path"), str)


def collect_changed_paths(files: Iterable[ChangedFile]) -> list[str]:
    """Unique changed paths (current and previous names), first-seen order."""
    seen: dict[str, None] = {}
    for item in files:
        seen.setdefault(normalize_path(item.path), None)
        if item.previous_path:
            seen.setdefault(normalize_path(item.previous_path), None)
    return list(seen)


def assess_workflow(
    document: WorkflowDocument,
    changed_paths: Sequence[str],
    context: EventContext,
) -> WorkflowAssessment:
    """Parse one workflow document and evaluate its triggers."""
    logger.info("Processing workflow file %s", document.name)
    if document.errors:
        for error in document.errors:
            logger.warning("[%s] %s", document.path, error)
        return WorkflowAssessment(name=document.name, path=document.path, errors=document.errors)

    parsed = parse_workflow_document(document.name, document.content)

    for error in parsed.errors:
        logger.warning("[%s] %s", document.path, error)

    if parsed.template is None:
        if not parsed.errors:
            logger.warning("[%s] Workflow failed to parse for an unknown reason.", document.path)
        return WorkflowAssessment(name=document.name, path=document.path, errors=parsed.errors)

    if not parsed.errors:
        logger.info("[%s] Parsed successfully.", document.path)

    triggers = evaluate_workflow_triggers(parsed.template, changed_paths, context)
    assessment = WorkflowAssessment(
        name=parsed.template.name or document.name,
        path=document.path,
        triggers=tuple(triggers),
        errors=parsed.errors,
    )

    matched = [trigger for trigger in triggers if trigger.matches]
    if matched:
        logger.info("Triggered events: %s", summarize_list([trigger.event for trigger in matched], 5))
        matched_files = list(dict.fromkeys(path for trigger in matched for path in trigger.matched_files))
        if matched_files:
            logger.info("Matched files: %s", summarize_list(matched_files))
    elif triggers:
        logger.info("No events triggered for this workflow.")
        logger.info(
            "Reasons: %s",
            summarize_list(
                [f"{trigger.event}: {'; '.join(trigger.reasons) or 'filters did not match'}" for trigger in triggers],
                5,
            ),
        )
    else:
        logger.info("Workflow does not define any triggers.")

    logger.info("Auto triggered: %s (%s)", "yes" if assessment.auto_triggered else "no", assessment.name)
    return assessment


def assess_workflows(
    client: ContentClient,
    repository: Repository,
    ref: str,
    changed_files: Sequence[ChangedFile],
    context: EventContext,
) -> list[WorkflowAssessment]:
    """Discover the workflows at ``ref`` and assess each one in discovery order."""
    documents = discover_workflow_files(client, repository, ref)
    changed_paths = collect_changed_paths(changed_files)

    logger.info(
        "Evaluating %d workflow file(s) at %s@%s with %d unique changed path(s).",
        len(documents),
        repository.full_name,
        ref,
        len(changed_paths),
    )
    if changed_paths:
        logger.info("Changed paths: %s", summarize_list(changed_paths))

    return [assess_workflow(document, changed_paths, context) for document in documents]
