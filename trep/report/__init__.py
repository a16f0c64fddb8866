"""HTML reporting for trep summaries."""

from trep.report.html_report import ReportError, failed_test_names, save_report

__all__ = ["ReportError", "failed_test_names", "save_report"]
