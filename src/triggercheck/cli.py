"""triggercheck CLI - which workflows would a commit range trigger."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from triggercheck import __version__
from triggercheck.context import ContextOverrides
from triggercheck.report import (
    REPORT_JSON,
    REPORT_MD,
    action_outputs,
    append_step_summary,
    format_workflow_assessment,
    render_summary_markdown,
    write_action_outputs,
    write_reports,
)
from triggercheck.run import RunOptions, missing_expectations, run_check

cli = typer.Typer(
    name="triggercheck",
    help="triggercheck - replay workflow trigger filters against a commit range",
    no_args_is_help=True,
)
console = Console()


class DiffStrategyOption(str, Enum):
    """Commit range strategy for the changed-file comparison."""

    AUTO = "auto"
    TWO_DOT = "two-dot"
    THREE_DOT = "three-dot"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _version_option_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show triggercheck version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """Replay workflow trigger filters against a commit range."""


@cli.command("check")
def check(
    repository: str | None = typer.Option(None, "--repository", help="Repository as owner/repo"),
    base_ref: str | None = typer.Option(None, "--base-ref", help="Base ref or sha of the commit range"),
    head_ref: str | None = typer.Option(None, "--head-ref", help="Head ref or sha of the commit range"),
    workflow_ref: str | None = typer.Option(
        None,
        "--workflow-ref",
        help="Ref to read workflow files from (default: head ref)",
    ),
    ref: str | None = typer.Option(None, "--ref", help="Event ref, e.g. refs/heads/main"),
    event_name: str | None = typer.Option(None, "--event-name", help="Event to evaluate, e.g. push"),
    base_branch: str | None = typer.Option(None, "--base-branch", help="Pull request base branch"),
    head_branch: str | None = typer.Option(None, "--head-branch", help="Pull request head branch"),
    action: str | None = typer.Option(None, "--action", help="Event action, e.g. synchronize"),
    diff_strategy: DiffStrategyOption = typer.Option(
        DiffStrategyOption.AUTO,
        "--diff-strategy",
        help="auto picks two-dot for push events and three-dot otherwise; --event-name, when given, decides the event",
    ),
    github_token: str = typer.Option(
        "",
        "--github-token",
        envvar="GITHUB_TOKEN",
        show_envvar=True,
        help="Token for the GitHub API",
    ),
    api_url: str | None = typer.Option(None, "--api-url", help="GitHub API base URL"),
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Local checkout used for the git diff fallback"),
    out: Path | None = typer.Option(None, "--out", "-o", help="Directory for TRIGGER_REPORT.json/.md"),
    expect: list[str] | None = typer.Option(
        None,
        "--expect",
        help="Workflow name or path that must be auto-triggered (repeatable)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Report which workflows the commit range would trigger automatically."""
    _configure_logging(verbose)

    options = RunOptions(
        github_token=github_token,
        repository=repository,
        base_ref=base_ref,
        head_ref=head_ref,
        workflow_ref=workflow_ref,
        diff_strategy=diff_strategy.value,
        api_url=api_url,
        repo_root=repo_root,
        overrides=ContextOverrides(
            ref=ref,
            event_name=event_name,
            base_branch=base_branch,
            head_branch=head_branch,
            action=action,
        ),
    )

    try:
        result = run_check(options)
    except RuntimeError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    summary = render_summary_markdown(
        result.assessments,
        changed_files_count=len(result.changed_files.files),
        triggered_count=len(result.triggered),
    )

    output_path = os.getenv("GITHUB_OUTPUT", "").strip()
    if output_path:
        write_action_outputs(Path(output_path), action_outputs(result.report, result.changed_files, result.assessments))
    summary_path = os.getenv("GITHUB_STEP_SUMMARY", "").strip()
    if summary_path:
        append_step_summary(Path(summary_path), summary)

    if out is not None:
        write_reports(out, result.report, result.assessments)
        console.print(f"[cyan]Report JSON:[/cyan] {out / REPORT_JSON}")
        console.print(f"[cyan]Report MD:[/cyan] {out / REPORT_MD}")

    console.print(
        f"[cyan]Changed files:[/cyan] {len(result.changed_files.files)} ({result.changed_files.source})"
    )
    if result.triggered:
        console.print(f"[green]✓ {len(result.triggered)} workflow(s) triggered[/green]")
        for assessment in result.triggered:
            console.print(f"  {format_workflow_assessment(assessment)}")
    else:
        console.print("[yellow]No workflows were automatically triggered.[/yellow]")

    missing = missing_expectations(result, expect or [])
    if missing:
        console.print(f"[bold red]Expected workflows not triggered:[/bold red] {', '.join(missing)}")
        raise typer.Exit(2)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
