"""HTML report generation for trep.

Renders a Summary into a standalone HTML page: a summary block, a list of
failing tests linking to their rows, and the full result table.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from jinja2 import BaseLoader, Environment

from trep.core.models import Summary
from trep.ui.table import FAIL_LABEL, PASS_LABEL, format_elapsed, format_output

logger = logging.getLogger(__name__)

FILENAME_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
GENERATED_AT_FORMAT = "%Y-%m-%d %H:%M:%S"


class ReportError(Exception):
    """Raised when the report cannot be written."""


@dataclass
class ReportRow:
    """One rendered table row."""

    index: int
    row_id: str
    label: str
    depth: int
    passed: bool
    elapsed: str
    output: str


REPORT_TEMPLATE = """<html>
<head>
<meta http-equiv="Content-Type" content="text/html; charset=UTF-8">
<title>{{ report_name }}</title>
<style>
  body {
      font-family: "Helvetica Neue",Helvetica,Arial,sans-serif;
      font-size: 14px;
      line-height: 1.42857143;
      color: #333;
      background-color: #fff;
  }
  .results-table {
      border-collapse: collapse;
      border-spacing: 0;
      border: 1px solid #ddd;
      width: 100%;
      margin-bottom: 20px;
  }
  .results-table th,
  .results-table td {
      border: 1px solid #ddd;
      padding: 8px;
      text-align: left;
      vertical-align: top;
  }
  .results-table th {
      background-color: #f5f5f5;
  }
  .results-table tr:nth-child(even) {
      background-color: #f2f2f2;
  }
  .results-table tr.package td {
      font-weight: bold;
      background-color: #e8e8e8;
  }
  .results-table pre {
      margin: 0;
      white-space: pre-wrap;
  }
  .fg-red {
      color: #a94442;
  }
  .fg-green {
      color: #3c763d;
  }
  .summary, .failed-tests {
      border: 1px solid #ddd;
      border-radius: 4px;
      padding: 15px;
      margin-bottom: 20px;
  }
  .summary {
      background-color: #f9f9f9;
  }
  .summary-table th,
  .summary-table td {
      text-align: left;
      padding: 8px;
      border-bottom: 1px solid #ddd;
  }
  .failed-tests h3 {
      margin-top: 0;
      color: #a94442;
  }
  .failed-tests ul {
      list-style-type: none;
      padding-left: 0;
  }
  .failed-tests ul li a {
      color: black;
      text-decoration: none;
  }
</style>
</head>
<body>
<div class="summary">
  <h3>{{ report_name }}</h3>
  <table class="summary-table">
    <tr><th>Generated at:</th><td>{{ generated_at }}</td></tr>
    <tr><th>Total:</th><td>{{ total }}</td></tr>
    <tr><th>Passed:</th><td>{{ passed }}</td></tr>
    <tr><th>Failed:</th><td>{{ failed }}</td></tr>
    <tr>
      <th>Status:</th>
      <td>
        {% if is_passed %}<span class="fg-green">PASS</span>{% else %}<span class="fg-red">FAIL</span>{% endif %}
      </td>
    </tr>
  </table>
</div>
{% if not is_passed %}
<div class="failed-tests">
  <h3>Failed Tests</h3>
  <ul id="failedTestsList">
    {% for name in failed_tests %}
    <li><a href="#{{ name }}">{{ name }}</a></li>
    {% endfor %}
  </ul>
</div>
{% endif %}
<table class="results-table">
  <thead>
    <tr><th>#</th><th>Name</th><th>Status</th><th>Time</th><th>Output</th></tr>
  </thead>
  <tbody>
  {% for package_name, rows in packages %}
    <tr class="package"><td></td><td colspan="4">{{ package_name }}</td></tr>
    {% for row in rows %}
    <tr id="{{ row.row_id }}">
      <td>{{ row.index }}</td>
      <td class="{{ 'fg-green' if row.passed else 'fg-red' }}" style="padding-left: {{ 8 + row.depth * 20 }}px">{{ row.label }}</td>
      <td class="{{ 'fg-green' if row.passed else 'fg-red' }}">{{ pass_label if row.passed else fail_label }}</td>
      <td>{{ row.elapsed }}</td>
      <td><pre>{{ row.output }}</pre></td>
    </tr>
    {% endfor %}
  {% endfor %}
  </tbody>
</table>
</body>
</html>
"""


def failed_test_names(summary: Summary) -> list[str]:
    """Leaf names of failing tests.

    Only root tests and their immediate sub-tests are walked; deeper
    failures surface through their failed ancestors.
    """
    failed_tests = []
    for package in summary.package_results:
        for test in package.test_results.values():
            if not test.passed:
                failed_tests.append(test.name)
            for subtest in test.subtests:
                if not subtest.passed:
                    failed_tests.append(subtest.name)
    return failed_tests


def _package_rows(summary: Summary) -> list[tuple[str, list[ReportRow]]]:
    packages = []
    index = 0
    for package in summary.package_results:
        rows = []
        for test in package.test_results.values():
            for depth, node in test.walk():
                index += 1
                rows.append(
                    ReportRow(
                        index=index,
                        row_id=node.name,
                        label=node.name,
                        depth=depth,
                        passed=node.passed,
                        elapsed=format_elapsed(node.elapsed),
                        output="" if node.passed else format_output(node.output),
                    )
                )
        packages.append((package.package_name, rows))
    return packages


def render_report(
    summary: Summary,
    report_name: str,
    generated_at: Optional[datetime] = None,
) -> str:
    """Render the HTML report.

    Args:
        summary: Aggregated run
        report_name: Title shown in the page
        generated_at: Timestamp to print (default: now)

    Returns:
        Complete HTML document
    """
    env = Environment(loader=BaseLoader(), autoescape=True)
    template = env.from_string(REPORT_TEMPLATE)
    generated_at = generated_at or datetime.now()

    return template.render(
        report_name=report_name,
        generated_at=generated_at.strftime(GENERATED_AT_FORMAT),
        total=summary.total_packages,
        passed=summary.total_passed,
        failed=summary.total_failed,
        is_passed=summary.total_failed == 0,
        failed_tests=failed_test_names(summary),
        packages=_package_rows(summary),
        pass_label=PASS_LABEL,
        fail_label=FAIL_LABEL,
    )


def save_report(
    summary: Summary,
    report_path: str | Path,
    report_name: str = "",
    now: Optional[datetime] = None,
) -> Path:
    """Render and write the report.

    Args:
        summary: Aggregated run
        report_path: Directory to write into (created if missing)
        report_name: File name without extension (default: report_<timestamp>)
        now: Clock override for the timestamp

    Returns:
        Path of the written file

    Raises:
        ReportError: If the directory or file cannot be written
    """
    now = now or datetime.now()
    timestamp = now.strftime(FILENAME_TIMESTAMP_FORMAT)
    file_stem = report_name or f"report_{timestamp}"
    title = report_name or f"Report {timestamp}"

    directory = Path(report_path)
    filename = directory / f"{file_stem}.html"
    html = render_report(summary, report_name=title, generated_at=now)

    try:
        directory.mkdir(parents=True, exist_ok=True)
        filename.write_text(html, encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write report to {filename}: {e}")
        raise ReportError(f"error saving report output: {e}") from e

    logger.info(f"Report saved to {filename}")
    return filename
