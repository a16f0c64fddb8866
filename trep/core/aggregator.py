"""Aggregation state machine for trep.

Consumes the ordered event sequence produced by the sequencer and builds a
Summary one event at a time. All state lives on the Aggregator instance:
- current_package: the PackageResult under construction
- current_test: the TestResult most recently started

Transitions per event kind:
- start: open a fresh package (last start wins, never merged)
- run: create a test node, attach it under its parent, bump counters
- output: package log line, or appended to the current test
- pass: record timing, passed = AND of all descendants
- fail: record timing, mark failed, reconcile counters, fail ancestors
- skip: no-op (package exclusion happens in the sequencer)
- package-level pass/fail: finalise the package and commit a copy

Per-event problems never raise; they are recorded as Diagnostics.
"""

import copy
import logging
from typing import Iterable, Optional

from trep.core.models import (
    Diagnostic,
    DropReason,
    Event,
    EventKind,
    PackageResult,
    Summary,
    TestResult,
)
from trep.core.resolver import LeafNameResolver, TestResolver

logger = logging.getLogger(__name__)


class Aggregator:
    """Builds a Summary from an ordered event sequence.

    Must be driven sequentially: sub-test attachment relies on the parent's
    `run` event having been processed earlier.

    Example:
        aggregator = Aggregator()
        summary = aggregator.process_all(events)
        print(f"{summary.total_passed} passed, {summary.total_failed} failed")
    """

    def __init__(self, resolver: Optional[TestResolver] = None):
        """Initialize Aggregator.

        Args:
            resolver: Strategy used to locate parents and ancestors by path
                (default: LeafNameResolver)
        """
        self.resolver = resolver or LeafNameResolver()
        self.summary = Summary()
        self.diagnostics: list[Diagnostic] = []
        self.current_package: Optional[PackageResult] = None
        self.current_test: Optional[TestResult] = None
        self.current_test_path = ""

        self._handlers = {
            EventKind.START: self._on_start,
            EventKind.RUN: self._on_run,
            EventKind.OUTPUT: self._on_output,
            EventKind.PASS: self._on_pass,
            EventKind.FAIL: self._on_fail,
            EventKind.SKIP: self._on_skip,
        }

    def process(self, event: Event) -> None:
        """Apply one event to the state machine."""
        self._handlers[event.kind](event)

    def process_all(self, events: Iterable[Event]) -> Summary:
        for event in events:
            self.process(event)
        return self.summary

    def _drop(self, reason: DropReason, message: str, event: Event) -> None:
        logger.warning(f"Dropped {event.kind.value} event ({message}): {event.package} {event.test}")
        self.diagnostics.append(
            Diagnostic(reason=reason, message=message, package=event.package, test=event.test)
        )

    def _open_package(self, event: Event) -> PackageResult:
        self.current_package = PackageResult(
            package_name=event.package,
            start_time=event.timestamp,
        )
        self.current_test = None
        self.current_test_path = ""
        return self.current_package

    def _require_package(self, event: Event) -> PackageResult:
        """Package the event belongs to, opened implicitly if needed.

        Runners older than Go 1.20 emit no `start` action.
        """
        package = self.current_package
        if package is None or package.package_name != event.package:
            logger.debug(f"Package {event.package} opened without a start event")
            package = self._open_package(event)
        return package

    def _on_start(self, event: Event) -> None:
        logger.debug(f"Package started: {event.package}")
        self._open_package(event)

    def _on_run(self, event: Event) -> None:
        if event.is_package_level:
            self._drop(DropReason.MALFORMED_EVENT, "run event without a test name", event)
            return

        package = self._require_package(event)
        node = TestResult(name=event.leaf_name, start_time=event.timestamp, passed=True)

        # Speculative: reconciled by a later fail, never by a missing completion
        self.summary.total_passed += 1
        self.summary.total_packages += 1

        parent_path = event.parent_path
        if not parent_path:
            package.test_results[event.test] = node
        else:
            parent = self.resolver.find(parent_path, package.test_results)
            if parent is not None:
                parent.subtests.append(node)
            else:
                self._drop(
                    DropReason.ORPHANED_SUBTEST,
                    f"parent {parent_path!r} not found",
                    event,
                )

        self.current_test = node
        self.current_test_path = event.test

    def _on_output(self, event: Event) -> None:
        if event.is_package_level:
            package = self._require_package(event)
            package.output.append(event.output)
            return

        # Attributed by temporal proximity, not by the event's test path
        if self.current_test is None:
            self._drop(DropReason.NO_CURRENT_TEST, "no test has started", event)
            return
        self.current_test.output.append(event.output)

    def _completion_target(self, event: Event, package: PackageResult) -> Optional[TestResult]:
        """Node addressed by a test-level pass/fail event."""
        if self.current_test is not None and self.current_test_path == event.test:
            return self.current_test
        return self.resolver.find(event.test, package.test_results)

    def _on_pass(self, event: Event) -> None:
        if event.is_package_level:
            self._finalize_package(event)
            return

        package = self._require_package(event)
        test = self._completion_target(event, package)
        if test is None:
            self._drop(DropReason.UNKNOWN_TEST, "test not found", event)
            return

        test.end_time = event.timestamp
        test.elapsed = event.elapsed
        # A parent cannot pass if any descendant failed, whatever the event says
        test.passed = test.all_subtests_passed()

        root = package.test_results.get(event.test)
        if root is not None:
            root.passed = test.passed

    def _on_fail(self, event: Event) -> None:
        if event.is_package_level:
            self._finalize_package(event)
            return

        package = self._require_package(event)
        test = self._completion_target(event, package)
        if test is not None:
            test.end_time = event.timestamp
            test.elapsed = event.elapsed
            test.passed = False
        else:
            self._drop(DropReason.UNKNOWN_TEST, "test not found", event)

        self.summary.total_failed += 1
        self.summary.total_passed -= 1

        self._fail_ancestors(event.test, package)

    def _fail_ancestors(self, path: str, package: PackageResult) -> None:
        parts = path.split("/")
        for i in range(len(parts) - 1, 0, -1):
            ancestor = self.resolver.find("/".join(parts[:i]), package.test_results)
            if ancestor is not None:
                ancestor.passed = False

    def _on_skip(self, event: Event) -> None:
        logger.debug(f"Ignoring skip event: {event.package} {event.test}")

    def _finalize_package(self, event: Event) -> None:
        package = self._require_package(event)
        package.end_time = event.timestamp
        package.elapsed = event.elapsed
        # The tests decide, not the event's own action
        package.passed = all(t.passed for t in package.test_results.values())

        self.summary.package_results.append(copy.deepcopy(package))
        logger.info(
            f"Package {package.package_name} finished: "
            f"{'pass' if package.passed else 'fail'} in {package.elapsed:.3f}s"
        )
