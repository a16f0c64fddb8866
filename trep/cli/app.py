"""trep CLI - readable reports for go test runs.

Command structure: trep <verb> [args] [--options]

Examples:
    trep exec "go test ./..."
    trep exec "go test ./..." --only-fail --report --report-path ./reports
    go test -json ./... > run.log; trep parse run.log
    trep parse run.log --format json
"""

import json
import sys
from pathlib import Path
from typing import Iterable, List, NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from trep import __version__
from trep.core.config import (
    CI_MODE,
    CLI_MODE,
    TrepSettings,
    configure_logging,
    load_environment,
)
from trep.core.engine import ReportEngine
from trep.core.models import Summary
from trep.core.resolver import TestResolver, get_resolver
from trep.core.sequencer import BuildFailureError
from trep.report.html_report import ReportError, save_report
from trep.runner.go_test import GoTestProcess, UnsupportedCommandError, prepare_command
from trep.ui.table import loader, render, totals_line

# Load environment variables from .env files
load_environment()

app = typer.Typer(
    name="trep",
    help="trep: run go test and format its output as a readable report",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def _load_settings() -> TrepSettings:
    try:
        return TrepSettings()
    except ValidationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _build_resolver(name: str) -> TestResolver:
    try:
        return get_resolver(name)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _is_ci_mode(mode: str) -> bool:
    if mode.lower() not in (CLI_MODE, CI_MODE):
        console.print(f"[red]Error:[/red] Invalid mode '{mode}'. Use '{CLI_MODE}' or '{CI_MODE}'")
        raise typer.Exit(1)
    return mode.lower() == CI_MODE


def _build_failure_exit(error: BuildFailureError) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(1)


def _save_report(summary: Summary, report_path: str, report_name: str) -> None:
    try:
        path = save_report(summary, report_path, report_name)
    except ReportError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"Report saved to {path}")


def _all_passed(out: Console, summary: Summary) -> None:
    out.print("[green]All tests passed![/green]")
    out.print(f"[green]{totals_line(summary)}[/green]")


def _present(
    summary: Summary,
    *,
    only_fail: bool,
    ci_mode: bool,
    report: bool,
    report_path: str,
    report_name: str,
) -> bool:
    """Render the summary and write the report when requested.

    Returns:
        False when --only-fail found nothing to show (the run is already
        reported as passed), True otherwise
    """
    out = Console(no_color=ci_mode, highlight=False)

    if only_fail and not summary.has_failures:
        if report:
            _save_report(summary, report_path, report_name)
        _all_passed(out, summary)
        return False

    render(summary, out, only_fail=only_fail, ci_mode=ci_mode)
    if report:
        _save_report(summary, report_path, report_name)
    return True


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR). Overrides LOG_LEVEL",
    ),
) -> None:
    """trep: run go test and format its output as a readable report."""
    settings = _load_settings()
    level = log_level or settings.log_level
    if level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        console.print(f"[red]Error:[/red] Invalid log level '{level}'")
        raise typer.Exit(1)
    configure_logging(level, settings.log_file)


@app.command("exec")
def exec_command(
    command: List[str] = typer.Argument(
        ...,
        help='go test command, e.g. "go test ./..."',
    ),
    only_fail: bool = typer.Option(False, "--only-fail", "-f", help="Only display failed tests"),
    report: bool = typer.Option(False, "--report", "-r", help="Generate an HTML report"),
    report_path: Optional[str] = typer.Option(
        None, "--report-path", "-p", help="Directory to save the report (default: ./)"
    ),
    report_name: Optional[str] = typer.Option(
        None, "--report-name", "-n", help="Custom report name, e.g. report"
    ),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Run mode: cli or ci"),
    resolver: Optional[str] = typer.Option(
        None, "--resolver", help="Sub-test lookup strategy: leaf-name or path"
    ),
) -> None:
    """Execute a go test command and format its output.

    --json, -v and --cover are added when missing.

    Examples:

        trep exec "go test ./..."

        trep exec "go test ./..." --only-fail --mode ci
    """
    settings = _load_settings()
    only_fail = only_fail or settings.only_fail
    report = report or settings.report
    ci_mode = _is_ci_mode(mode or settings.mode)

    try:
        args = prepare_command(command)
    except UnsupportedCommandError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    engine = ReportEngine(resolver=_build_resolver(resolver or settings.resolver))
    process = GoTestProcess(args)

    try:
        with loader(console, ci_mode=ci_mode):
            for line in process.lines():
                engine.feed(line)
    except UnsupportedCommandError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    try:
        summary = engine.finish()
    except BuildFailureError as e:
        process.wait()
        _build_failure_exit(e)

    shown = _present(
        summary,
        only_fail=only_fail,
        ci_mode=ci_mode,
        report=report,
        report_path=report_path or settings.report_path,
        report_name=report_name if report_name is not None else settings.report_name,
    )
    returncode = process.wait()
    if not shown:
        return

    out = Console(no_color=ci_mode, highlight=False)
    if returncode != 0:
        out.print(f"[red]{totals_line(summary)}[/red]")
        console.print(f"[red]Error:[/red] tests failed: exit status {returncode}")
        raise typer.Exit(1)

    out.print(f"[green]{totals_line(summary)}[/green]")
    out.print("[green]All tests passed![/green]")


def _read_lines(source: str) -> Iterable[str]:
    if source == "-":
        return sys.stdin.read().splitlines()

    path = Path(source)
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {source}")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8", errors="replace").splitlines()


@app.command()
def parse(
    source: str = typer.Argument("-", help="Saved go test -json output, or - for stdin"),
    format: str = typer.Option("text", "--format", help="Output format: text or json"),
    only_fail: bool = typer.Option(False, "--only-fail", "-f", help="Only display failed tests"),
    report: bool = typer.Option(False, "--report", "-r", help="Generate an HTML report"),
    report_path: Optional[str] = typer.Option(
        None, "--report-path", "-p", help="Directory to save the report (default: ./)"
    ),
    report_name: Optional[str] = typer.Option(
        None, "--report-name", "-n", help="Custom report name, e.g. report"
    ),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Run mode: cli or ci"),
    resolver: Optional[str] = typer.Option(
        None, "--resolver", help="Sub-test lookup strategy: leaf-name or path"
    ),
) -> None:
    """Format a saved go test -json log.

    Exits with 1 when any test failed or the build failed.

    Examples:

        go test -json ./... > run.log; trep parse run.log

        go test -json ./... | trep parse - --format json
    """
    if format not in ("text", "json"):
        console.print(f"[red]Error:[/red] Invalid format '{format}'. Use 'text' or 'json'")
        raise typer.Exit(1)

    settings = _load_settings()
    only_fail = only_fail or settings.only_fail
    report = report or settings.report
    ci_mode = _is_ci_mode(mode or settings.mode)

    engine = ReportEngine(resolver=_build_resolver(resolver or settings.resolver))
    engine.feed_many(_read_lines(source))

    try:
        summary = engine.finish()
    except BuildFailureError as e:
        _build_failure_exit(e)

    report_path = report_path or settings.report_path
    report_name = report_name if report_name is not None else settings.report_name

    if format == "json":
        payload = {
            "summary": summary.to_dict(),
            "diagnostics": [d.to_dict() for d in engine.diagnostics],
        }
        typer.echo(json.dumps(payload, indent=2))
        if report:
            _save_report(summary, report_path, report_name)
    else:
        shown = _present(
            summary,
            only_fail=only_fail,
            ci_mode=ci_mode,
            report=report,
            report_path=report_path,
            report_name=report_name,
        )
        if shown:
            color = "red" if summary.has_failures else "green"
            Console(no_color=ci_mode, highlight=False).print(f"[{color}]{totals_line(summary)}[/{color}]")

    if summary.has_failures:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show the trep version."""
    console.print(f"trep {__version__}")
