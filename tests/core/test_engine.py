"""Tests for trep/core/engine.py."""

import pytest

from trep.core.engine import ReportEngine, build_summary
from trep.core.models import DropReason
from trep.core.resolver import PathResolver
from trep.core.sequencer import BuildFailureError


class TestReportEngine:
    """End-to-end tests from raw lines to a Summary."""

    def test_passing_run(self, passing_run):
        summary = build_summary(passing_run)

        package = summary.package_results[0]
        assert package.passed is True
        assert package.elapsed == 1.0
        assert package.output == ["PASS\n"]
        assert package.test_results["TestOK"].output == [
            "=== RUN   TestOK\n",
            "--- PASS: TestOK (0.00s)\n",
        ]
        assert summary.has_failures is False

    def test_failing_run(self, failing_run):
        summary = build_summary(failing_run)

        package = summary.package_results[0]
        root = package.test_results["TestExample"]
        assert package.passed is False
        assert root.passed is False
        assert [(s.name, s.passed) for s in root.subtests] == [
            ("pass_test", True),
            ("fail_test", False),
        ]
        # Three runs, two fails
        assert summary.total_passed == 1
        assert summary.total_failed == 2
        assert summary.has_failures is True

    def test_shuffled_lines_give_same_result(self, failing_run):
        expected = build_summary(failing_run).to_dict()

        shuffled = failing_run[1:] + failing_run[:1]
        shuffled[1], shuffled[2] = shuffled[2], shuffled[1]

        assert build_summary(shuffled).to_dict() == expected

    def test_skipped_package_is_left_out(self, go_line, passing_run):
        lines = passing_run + [
            go_line("start", "pkgSkip", t=0),
            go_line("output", "pkgSkip", output="?   \tpkgSkip\t[no test files]\n", t=1),
            go_line("skip", "pkgSkip", t=1),
        ]

        engine = ReportEngine()
        engine.feed_many(lines)
        summary = engine.finish()

        assert [p.package_name for p in summary.package_results] == ["pkgA"]
        assert [d.reason for d in engine.diagnostics] == [DropReason.SKIPPED_PACKAGE]

    def test_empty_input(self):
        summary = build_summary([])

        assert summary.package_results == []
        assert (summary.total_packages, summary.total_passed, summary.total_failed) == (0, 0, 0)

    def test_build_failure(self, passing_run):
        lines = passing_run + [
            "# pkgB",
            "pkgB/b.go:4:2: undefined: missing",
            "FAIL\tpkgB [build failed]",
        ]

        with pytest.raises(BuildFailureError) as exc_info:
            build_summary(lines)

        assert "pkgB/b.go:4:2: undefined: missing" in exc_info.value.diagnostic_text

    def test_partial_stream(self, failing_run):
        """A cut-off stream still yields what was seen so far."""
        summary = build_summary(failing_run[:5])

        assert summary.package_results == []
        assert summary.total_passed == 3
        assert summary.total_failed == 0

    def test_incremental_feed_and_idempotent_finish(self, passing_run):
        engine = ReportEngine()
        for line in passing_run:
            engine.feed(line)
        engine.feed("coverage: 80.0% of statements")

        first = engine.finish()
        second = engine.finish()

        assert first is second
        assert engine.non_event_lines == ["coverage: 80.0% of statements"]

    def test_diagnostics_combine_both_stages(self, go_line):
        engine = ReportEngine(resolver=PathResolver())
        engine.feed_many(
            [
                '{"Action": "bogus", "Time": "2024-01-15T10:30:00Z"}',
                go_line("start", t=0),
                go_line("run", test="Missing/child", t=1),
            ]
        )
        engine.finish()

        assert [d.reason for d in engine.diagnostics] == [
            DropReason.MALFORMED_EVENT,
            DropReason.ORPHANED_SUBTEST,
        ]
