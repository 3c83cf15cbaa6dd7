"""Git queries used by changed-file resolution and repository detection."""

from __future__ import annotations

from pathlib import Path

from triggercheck.git.exec import ExecError, run_git


def checkout_root(path: Path) -> Path:
    """Return the working-tree root that contains ``path``.

    Raises:
        RuntimeError: If ``path`` is not inside a git checkout
    """
    result = run_git(["rev-parse", "--show-toplevel"], repo_root=path.resolve(), check=False)
    root = result.stdout.strip()
    if not result.ok or not root:
        raise RuntimeError(f"{path} is not inside a git checkout; the local diff fallback needs one (see --repo-root).")
    return Path(root).resolve()


def git_diff_name_status(diff_range: str, *, repo_root: Path) -> str:
    """Return raw ``git diff --name-status`` output for ``diff_range``."""
    return run_git(["diff", "--name-status", diff_range], repo_root=repo_root).stdout


def remote_url(repo_root: Path, remote: str = "origin") -> str | None:
    """Return the URL configured for ``remote``, or None when unavailable."""
    try:
        result = run_git(["remote", "get-url", remote], repo_root=repo_root, check=False)
    except ExecError:
        return None
    if not result.ok:
        return None
    return result.stdout.strip() or None
