"""Local git collaborators for triggercheck."""

from triggercheck.git.commands import checkout_root, git_diff_name_status, remote_url
from triggercheck.git.exec import ExecError, ExecResult, run_command, run_git

__all__ = [
    "ExecError",
    "ExecResult",
    "checkout_root",
    "git_diff_name_status",
    "remote_url",
    "run_command",
    "run_git",
]
