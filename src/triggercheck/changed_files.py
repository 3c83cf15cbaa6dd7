"""Changed-file resolution for a commit range.

The hosted compare endpoint is queried first (a single page of 100 entries).
When its answer looks truncated the local ``git diff --name-status`` output for
the same range is used instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from triggercheck.types import ChangedFile, ChangedFilesResult, DiffStrategy, FileStatus

logger = logging.getLogger(__name__)

COMPARE_PAGE_SIZE = 100
# Observed ceiling of files the compare endpoint returns for one comparison.
COMPARE_FILE_CAP = 300

CompareFn = Callable[[str], Any]
GitDiffFn = Callable[[str], str]

_STATUS_MAP: dict[str, FileStatus] = {
    "added": "added",
    "A": "added",
    "modified": "modified",
    "M": "modified",
    "removed": "removed",
    "D": "removed",
    "renamed": "renamed",
    "R": "renamed",
}


def normalize_path(path: str) -> str:
    """Return ``path`` with forward-slash separators."""
    return path.replace("\\", "/")


def normalize_status(status: str | None) -> FileStatus:
    """Map a hosted or git status token onto a file status (default: modified)."""
    return _STATUS_MAP.get(status or "", "modified")


def build_range(base_ref: str, head_ref: str, diff_strategy: DiffStrategy = "three-dot") -> str:
    """Build ``base..head`` (two-dot) or ``base...head`` (three-dot)."""
    separator = ".." if diff_strategy == "two-dot" else "..."
    return f"{base_ref}{separator}{head_ref}"


def map_compare_response(payload: Any) -> tuple[list[ChangedFile], int | None]:
    """Map a compare payload to changed files plus its declared total, if any."""
    if not isinstance(payload, Mapping):
        return [], None

    entries = payload.get("files")
    files: list[ChangedFile] = []
    if isinstance(entries, list):
        for entry in entries:
            if not isinstance(entry, Mapping) or not isinstance(entry.get("filename"), str):
                continue
            previous = entry.get("previous_filename")
            files.append(
                ChangedFile(
                    path=normalize_path(entry["filename"]),
                    status=normalize_status(entry.get("status")),
                    previous_path=normalize_path(previous) if isinstance(previous, str) and previous else None,
                )
            )

    total = payload.get("total_files")
    if isinstance(total, bool) or not isinstance(total, int):
        total = None
    return files, total


def is_truncated(returned_count: int, total_files: int | None) -> bool:
    """Return whether a compare answer may be missing files."""
    declared = returned_count if total_files is None else total_files
    return declared > returned_count or returned_count >= COMPARE_FILE_CAP


def parse_name_status(output: str) -> list[ChangedFile]:
    """Parse ``git diff --name-status`` output. Malformed lines are skipped."""
    files: list[ChangedFile] = []
    for line in output.strip().splitlines():
        if not line:
            continue
        status_token, *rest = line.split("\t")
        if not status_token:
            continue

        if status_token.startswith("R"):
            if len(rest) < 2 or not rest[0] or not rest[1]:
                continue
            files.append(
                ChangedFile(
                    path=normalize_path(rest[1]),
                    previous_path=normalize_path(rest[0]),
                    status="renamed",
                )
            )
            continue

        if not rest or not rest[0]:
            continue
        files.append(ChangedFile(path=normalize_path(rest[0]), status=normalize_status(status_token)))
    return files


def get_changed_files(
    *,
    compare: CompareFn,
    git_diff: GitDiffFn,
    base_ref: str,
    head_ref: str,
    diff_strategy: DiffStrategy = "three-dot",
) -> ChangedFilesResult:
    """Resolve the complete changed-file list for ``base_ref``/``head_ref``.

    Args:
        compare: Hosted compare call taking the range string, returning the payload
        git_diff: Local diff call taking the range string, returning name-status output
        base_ref: Base ref or sha
        head_ref: Head ref or sha
        diff_strategy: "two-dot" or "three-dot"

    Returns:
        ChangedFilesResult tagged with the source that produced it. ``truncated``
        is always False: the git fallback is taken to be complete.
    """
    basehead = build_range(base_ref, head_ref, diff_strategy)
    files, total_files = map_compare_response(compare(basehead))

    if not is_truncated(len(files), total_files):
        return ChangedFilesResult(files=tuple(files), source="api", truncated=False)

    logger.info(
        "Compare API returned %d files (possibly truncated). "
        "Falling back to local git diff for complete list.",
        len(files),
    )
    fallback = parse_name_status(git_diff(basehead))
    return ChangedFilesResult(files=tuple(fallback), source="git", truncated=False)
