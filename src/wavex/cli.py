"""wavex CLI - schedule findings into a dependency-ordered wave backlog."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from wavex import __version__
from wavex.artifacts import (
    BACKLOG_FILENAME,
    REFUSAL_FILENAME,
    write_backlog_artifacts,
    write_refusal_report,
)
from wavex.config import ConfigError, ensure_default_config, load_policy_file, load_scheduler_policy
from wavex.loader import InputFileError, load_backlog, load_findings, load_prior
from wavex.reporting import explain_task
from wavex.scheduler import Backlog, ConflictResolution, SchedulerError, schedule_backlog
from wavex.scheduler.validator import collect_violations

DEFAULT_OUT_RELATIVE_PATH = Path("out/wavex")

cli = typer.Typer(
    name="wavex",
    help="wavex - turn findings into a validated, wave-ordered backlog",
    no_args_is_help=True,
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show wavex version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """Schedule findings into waves A-F with stable task IDs."""


@cli.command(name="init")
def init_cmd(
    repo_root: Path = typer.Option(
        Path("."),
        "--repo-root",
        help="Repository root path",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing scheduler config",
    ),
) -> None:
    """Write the default .wavex/scheduler.yaml."""
    try:
        path = ensure_default_config(repo_root, force=force)
    except FileExistsError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        console.print("Use --force to overwrite.")
        raise typer.Exit(1) from exc

    console.print(f"[green]✓ Scheduler config written[/green] {path}")


@cli.command(name="plan")
def plan_cmd(
    findings: Path = typer.Option(
        ...,
        "--findings",
        help="Findings file (YAML or JSON)",
    ),
    repo_root: Path = typer.Option(
        Path("."),
        "--repo-root",
        help="Repository root path (for .wavex/scheduler.yaml)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Explicit scheduler config path (overrides the repo config)",
    ),
    prior: Path | None = typer.Option(
        None,
        "--prior",
        help="Previous BACKLOG.json whose task IDs should stay stable",
    ),
    out: Path = typer.Option(
        DEFAULT_OUT_RELATIVE_PATH,
        "--out",
        help="Output directory for BACKLOG.json",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every pipeline stage"),
) -> None:
    """Schedule findings and write BACKLOG.json (exit 2 on refusal)."""
    _configure_logging(verbose)

    try:
        policy = load_policy_file(config) if config else load_scheduler_policy(repo_root)
        prior_assignment = load_prior(prior) if prior else None
    except (ConfigError, InputFileError) as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    resolved_out = out if out.is_absolute() else (repo_root / out)
    resolved_out = resolved_out.resolve()

    try:
        # Duplicate keys and malformed records surface as SchedulerError here.
        registry, splits = load_findings(findings)
        backlog = schedule_backlog(
            registry,
            splits=splits,
            prior=prior_assignment,
            policy=policy,
        )
    except InputFileError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    except SchedulerError as exc:
        write_refusal_report(resolved_out, exc)
        console.print(f"[bold red]Refused ({exc.reason_code}):[/bold red] {escape(str(exc))}")
        console.print(f"[cyan]Report:[/cyan] {resolved_out / REFUSAL_FILENAME}")
        raise typer.Exit(2) from exc

    write_backlog_artifacts(resolved_out, backlog)
    _print_backlog(backlog)
    console.print("[green]✓ Backlog written[/green]")
    console.print(f"[cyan]JSON:[/cyan] {resolved_out / BACKLOG_FILENAME}")


@cli.command(name="check")
def check_cmd(
    backlog_path: Path = typer.Argument(..., help="BACKLOG.json to re-validate"),
) -> None:
    """Re-run the backlog invariant checks on a written backlog."""
    try:
        backlog = load_backlog(backlog_path)
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    violations = collect_violations(backlog)
    if violations:
        console.print(f"[bold red]✗ {len(violations)} invariant violation(s)[/bold red]")
        for violation in violations:
            console.print(f"[red]  - {escape(violation)}[/red]")
        raise typer.Exit(2)

    console.print(f"[green]✓ Backlog valid ({len(backlog.tasks)} tasks)[/green]")


@cli.command(name="explain")
def explain_cmd(
    backlog_path: Path = typer.Argument(..., help="BACKLOG.json"),
    task_id: str = typer.Argument(..., help="Task ID, e.g. B2"),
) -> None:
    """Explain one task's wave placement and dependencies."""
    try:
        backlog = load_backlog(backlog_path)
        text = explain_task(backlog, task_id.strip().upper())
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    except KeyError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc.args[0]))}")
        raise typer.Exit(1) from exc

    typer.echo(text)


def _print_backlog(backlog: Backlog) -> None:
    table = Table(title="Backlog")
    table.add_column("id", style="bold")
    table.add_column("priority")
    table.add_column("size")
    table.add_column("depends on")
    table.add_column("title")
    for task in backlog.tasks:
        table.add_row(
            task.id,
            task.priority.value,
            task.size.value,
            ", ".join(task.dependencies) or "-",
            task.title,
        )
    console.print(table)

    for item in backlog.diagnostics:
        if item.resolution is ConflictResolution.UNRESOLVED:
            console.print(
                f"[yellow]Unresolved conflict:[/yellow] {item.first} / {item.second} "
                f"on {', '.join(item.shared)}"
            )
        else:
            console.print(
                f"[cyan]Ordered:[/cyan] {item.dependent} after {item.prerequisite} "
                f"({', '.join(item.shared)})"
            )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
