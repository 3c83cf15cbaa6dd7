"""Glob filter matching for workflow trigger filters.

Patterns follow the workflow filter conventions:

- a leading ``!`` negates the pattern; the rest is compiled as a positive glob
- ``*`` and ``?`` never cross ``/``; ``**`` matches any number of segments
- matching is case-sensitive and dotfiles are matchable
- every pattern is anchored at the start of the value

Within a filter list the *last* pattern that matches a value decides the
verdict, so ``["a/**", "!a/skip/**", "a/skip/x"]`` re-admits ``a/skip/x``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from pathspec.patterns import GitWildMatchPattern

from triggercheck.types import FilterVerdict

logger = logging.getLogger(__name__)

# Group name pathspec uses for the "directory contents" tail of a pattern.
_DIR_MARK = "ps_d"

Matcher = Callable[[str], bool]


@dataclass(frozen=True)
class CompiledPattern:
    """A single compiled filter pattern."""

    pattern: str
    negate: bool
    matcher: Matcher


def _never(_value: str) -> bool:
    return False


def _build_matcher(source: str) -> Matcher:
    anchored = source if source.startswith("/") else f"/{source}"
    try:
        regex_text, _ = GitWildMatchPattern.pattern_to_regex(anchored)
    except ValueError as exc:
        logger.warning("Ignoring invalid filter pattern %r: %s", source, exc)
        return _never
    if regex_text is None:
        return _never

    regex = re.compile(regex_text)
    recursive_tail = source == "**" or source.endswith("/**") or source.endswith("/")

    def _match(value: str) -> bool:
        found = regex.match(value)
        if found is None:
            return False
        if recursive_tail:
            return True
        # pathspec lets "foo" match everything under a directory named foo;
        # filter globs only match the value itself.
        return found.groupdict().get(_DIR_MARK) is None

    return _match


def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile one filter string into a matcher with negation metadata."""
    negate = pattern.startswith("!")
    source = pattern[1:] if negate else pattern
    matcher = _build_matcher(source) if source else _never
    return CompiledPattern(pattern=pattern, negate=negate, matcher=matcher)


def compile_patterns(patterns: Iterable[str] | None = None) -> list[CompiledPattern]:
    """Compile a filter list, dropping empty strings."""
    return [compile_pattern(pattern) for pattern in (patterns or ()) if pattern]


def matches_compiled(value: str, compiled: Sequence[CompiledPattern]) -> bool:
    """Return whether ``value`` matches ``compiled``; the last matching pattern wins.

    An empty pattern set never matches. Callers decide separately what an
    unconfigured filter means.
    """
    matched = False
    for pattern in compiled:
        if pattern.matcher(value):
            matched = not pattern.negate
    return matched


def evaluate_path_filters(
    files: Sequence[str],
    includes: Sequence[str] | None,
    excludes: Sequence[str] | None,
) -> FilterVerdict:
    """Apply ``paths`` / ``paths-ignore`` to the changed paths.

    Matched files keep the order of ``files``.
    """
    considered = list(files)

    if includes:
        compiled_includes = compile_patterns(includes)
        included = [path for path in considered if matches_compiled(path, compiled_includes)]
        if not included:
            return FilterVerdict(
                matches=False,
                reasons=("No changed files satisfied `paths` filter.",),
            )
        considered = included

    if excludes:
        compiled_excludes = compile_patterns(excludes)
        ignored = {path for path in considered if matches_compiled(path, compiled_excludes)}
        if len(ignored) == len(set(considered)):
            return FilterVerdict(
                matches=False,
                reasons=("All matching files were ignored by `paths-ignore` filter.",),
            )
        considered = [path for path in considered if path not in ignored]

    return FilterVerdict(matches=bool(considered), matched_files=tuple(considered))


def _evaluate_ref_filters(
    label: str,
    key: str,
    value: str | None,
    includes: Sequence[str] | None,
    excludes: Sequence[str] | None,
) -> FilterVerdict:
    if not value:
        return FilterVerdict(
            matches=False,
            reasons=(f"{label} information unavailable to evaluate filters.",),
        )

    if includes and not matches_compiled(value, compile_patterns(includes)):
        return FilterVerdict(
            matches=False,
            reasons=(f'{label} "{value}" did not satisfy `{key}` filter.',),
        )

    if excludes and matches_compiled(value, compile_patterns(excludes)):
        return FilterVerdict(
            matches=False,
            reasons=(f'{label} "{value}" was excluded by `{key}-ignore` filter.',),
        )

    return FilterVerdict(matches=True)


def evaluate_branch_filters(
    branch: str | None,
    includes: Sequence[str] | None,
    excludes: Sequence[str] | None,
) -> FilterVerdict:
    """Apply ``branches`` / ``branches-ignore`` to a single branch name."""
    return _evaluate_ref_filters("Branch", "branches", branch, includes, excludes)


def evaluate_tag_filters(
    tag: str | None,
    includes: Sequence[str] | None,
    excludes: Sequence[str] | None,
) -> FilterVerdict:
    """Apply ``tags`` / ``tags-ignore`` to a single tag name."""
    return _evaluate_ref_filters("Tag", "tags", tag, includes, excludes)


def evaluate_types_filter(
    actual_type: str | None,
    allowed_types: Sequence[str] | None,
) -> FilterVerdict:
    """Apply a ``types`` filter. No configured types accepts every sub-type."""
    if not allowed_types:
        return FilterVerdict(matches=True)

    if not actual_type:
        return FilterVerdict(
            matches=False,
            reasons=("Event type information unavailable to evaluate `types`.",),
        )

    if not matches_compiled(actual_type, compile_patterns(allowed_types)):
        return FilterVerdict(
            matches=False,
            reasons=(f'Event type "{actual_type}" did not satisfy configured `types`.',),
        )

    return FilterVerdict(matches=True)
