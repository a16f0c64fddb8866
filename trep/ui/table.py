"""Terminal rendering of a Summary with rich.

One row per root test, followed depth-first by its sub-tests. Output is
only shown for failed tests, reduced to the testify `Error:` block when
one is present.
"""

import re
from contextlib import contextmanager
from typing import Iterator, Optional

from rich import box
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from trep.core.models import Summary, TestResult

PASS_LABEL = "✓ pass"
FAIL_LABEL = "× fail"

_ERROR_BLOCK_RE = re.compile(r"Error:(.*?)(\n\s*Test:)", re.DOTALL)


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time in seconds, e.g. "1.250s"."""
    return f"{seconds:.3f}s"


def extract_error(text: str) -> Optional[str]:
    """Pull the message out of a testify `Error: ... Test:` block."""
    match = _ERROR_BLOCK_RE.search(text)
    if not match:
        return None
    return match.group(1).replace("\t", " ").strip()


def format_output(lines: list[str]) -> str:
    """Condense captured output lines for a table cell."""
    output = "\n".join(lines)
    output = output.replace("\n\n", "\n").replace("\t\t", "\t")
    output = output.rstrip("\n")
    error = extract_error(output)
    return error if error is not None else output


def totals_line(summary: Summary) -> str:
    return (
        f"{summary.total_packages} tests total, "
        f"{summary.total_passed} tests passed, "
        f"{summary.total_failed} tests failed"
    )


def _styled(text: str, style: str, ci_mode: bool) -> Text:
    return Text(text) if ci_mode else Text(text, style=style)


def _rows(test: TestResult, only_fail: bool) -> Iterator[tuple[str, TestResult]]:
    """Yield (prefix, node) pairs depth-first, honouring only_fail."""

    def visit(node: TestResult, indent: str) -> Iterator[tuple[str, TestResult]]:
        visible = [s for s in node.subtests if not (only_fail and s.passed)]
        for i, subtest in enumerate(visible):
            symbol = " ╰─ " if i == len(visible) - 1 else " ├─ "
            yield indent + symbol, subtest
            yield from visit(subtest, indent + "    ")

    yield "", test
    yield from visit(test, "")


def build_table(summary: Summary, only_fail: bool = False, ci_mode: bool = False) -> Table:
    """Build a rich Table for the summary.

    Args:
        summary: Aggregated run
        only_fail: Hide passed tests
        ci_mode: Render without colours
    """
    table = Table(box=box.SQUARE, show_header=True, show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Time", justify="right")
    table.add_column("Output", overflow="fold")

    index = 0
    for package in summary.package_results:
        roots = [t for t in package.test_results.values() if not (only_fail and t.passed)]
        if not roots:
            continue

        table.add_row("", _styled(package.package_name, "bold", ci_mode), "", "", "")
        for root in roots:
            for prefix, node in _rows(root, only_fail):
                index += 1
                style = "green" if node.passed else "red"
                table.add_row(
                    str(index),
                    _styled(prefix + node.name, style, ci_mode),
                    _styled(PASS_LABEL if node.passed else FAIL_LABEL, style, ci_mode),
                    format_elapsed(node.elapsed),
                    Text("" if node.passed else format_output(node.output)),
                )
            table.add_section()

    return table


def render(
    summary: Summary,
    console: Console,
    only_fail: bool = False,
    ci_mode: bool = False,
) -> None:
    console.print(build_table(summary, only_fail=only_fail, ci_mode=ci_mode))


@contextmanager
def loader(console: Console, ci_mode: bool = False):
    """Show progress while the test process runs.

    Interactive runs get a transient spinner; CI runs a single plain line.
    """
    if ci_mode:
        console.print("Running tests...")
        yield
        return

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Running tests...", total=None)
        yield
