"""Subprocess runner for local git calls."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

# Keep path output raw UTF-8 so --name-status lines stay parseable.
GIT_CONFIG_OVERRIDES = ("-c", "core.quotepath=off")
GIT_ENV = {"GIT_TERMINAL_PROMPT": "0", "LC_ALL": "C"}
DEFAULT_TIMEOUT = 120.0


@dataclass(frozen=True)
class ExecResult:
    """Captured outcome of one subprocess call."""

    argv: tuple[str, ...]
    cwd: Path
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ExecError(RuntimeError):
    """Raised when a checked command exits non-zero or cannot be started."""

    def __init__(self, result: ExecResult):
        rendered = " ".join(result.argv)
        detail = (result.stderr or result.stdout).strip()
        super().__init__(f"command failed ({result.returncode}): {rendered}\n{detail}")
        self.result = result


def run_command(
    argv: list[str],
    *,
    cwd: Path,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> ExecResult:
    """Run ``argv`` in ``cwd`` and capture its output.

    ``env`` entries are layered over the current process environment. A
    missing executable (127) or a timeout (124) is reported as ExecError
    regardless of ``check``.
    """
    merged_env = {**os.environ, **env} if env else None
    try:
        completed = subprocess.run(
            argv,
            cwd=cwd,
            env=merged_env,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ExecError(_failed(argv, cwd, 127, str(exc))) from exc
    except subprocess.TimeoutExpired as exc:
        raise ExecError(_failed(argv, cwd, 124, f"timed out after {timeout}s")) from exc

    result = ExecResult(
        argv=tuple(argv),
        cwd=cwd.resolve(),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
    if check and not result.ok:
        raise ExecError(result)
    return result


def _failed(argv: list[str], cwd: Path, returncode: int, stderr: str) -> ExecResult:
    return ExecResult(argv=tuple(argv), cwd=cwd, returncode=returncode, stdout="", stderr=stderr)


def run_git(
    args: list[str],
    *,
    repo_root: Path,
    check: bool = True,
) -> ExecResult:
    """Run ``git <args>`` inside ``repo_root`` without interactive prompts."""
    return run_command(["git", *GIT_CONFIG_OVERRIDES, *args], cwd=repo_root, check=check, env=GIT_ENV)
