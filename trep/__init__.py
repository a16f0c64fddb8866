"""
trep: readable reports for `go test -json` runs.

Consumes the structured event stream of a Go test run, rebuilds the
package/test/sub-test hierarchy with pass/fail propagation, and renders
it as a terminal table or an HTML report.
"""

__version__ = "0.1.0"

from trep.core.engine import ReportEngine, build_summary
from trep.core.models import Event, EventKind, PackageResult, Summary, TestResult

__all__ = [
    "ReportEngine",
    "build_summary",
    "Event",
    "EventKind",
    "PackageResult",
    "Summary",
    "TestResult",
]
