"""Event Sequencer for trep.

Turns the raw line stream of a `go test -json` run into an ordered event
sequence for the aggregator:
- Non-JSON lines are kept verbatim as diagnostic context
- A "FAIL ... [build failed]" line marks a fatal build failure
- Events are sorted by time and grouped per package
- Packages that report any `skip` action are excluded entirely

This module is headless - no terminal or process dependencies.
"""

import json
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from pydantic import ValidationError

from trep.core.models import Diagnostic, DropReason, Event, EventKind

logger = logging.getLogger(__name__)

BUILD_FAILURE_PREFIX = "FAIL"
BUILD_FAILURE_MARKER = "[build failed]"
BUILD_FAILURE_MESSAGE = "there are build issues. please check the logs and source code"


@dataclass
class BuildFailure:
    """The line that tripped build-failure detection."""

    line: str


class BuildFailureError(Exception):
    """Raised when the code under test failed to compile.

    Carries every non-event line collected so far as diagnostic text.
    """

    def __init__(self, failure: BuildFailure, non_event_lines: list[str]):
        self.failure = failure
        self.non_event_lines = list(non_event_lines)
        super().__init__(f"{BUILD_FAILURE_MESSAGE}:\n\n {self.diagnostic_text}")

    @property
    def diagnostic_text(self) -> str:
        return "\n".join(self.non_event_lines)


def is_json(line: str) -> bool:
    """Check whether a line is valid JSON of any shape."""
    try:
        json.loads(line)
    except ValueError:
        return False
    return True


def parse_line(line: str) -> Optional[Event]:
    """Decode one line into an Event.

    Returns:
        The decoded Event, or None when the line is not a JSON object with
        a known action and a valid timestamp.
    """
    try:
        data = json.loads(line)
    except ValueError:
        return None

    if not isinstance(data, dict):
        return None

    try:
        return Event.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Line is JSON but not an event ({e.error_count()} errors): {line!r}")
        return None


def is_build_failure_line(line: str) -> bool:
    return line.startswith(BUILD_FAILURE_PREFIX) and BUILD_FAILURE_MARKER in line


def detect_build_failure(non_event_lines: Iterable[str]) -> Optional[BuildFailure]:
    """Scan non-event lines for the runner's build-failure marker.

    Args:
        non_event_lines: Lines that did not decode as events

    Returns:
        BuildFailure for the first marker line, None if there is none
    """
    for line in non_event_lines:
        if is_build_failure_line(line):
            return BuildFailure(line=line)
    return None


def group_and_order(
    events: Iterable[Event],
    diagnostics: Optional[list[Diagnostic]] = None,
) -> list[Event]:
    """Order events by time and make each package's events contiguous.

    Events are stable-sorted by timestamp, then grouped by package. Groups
    appear in the order of each package's earliest event. Any package with
    a `skip` event is dropped as a whole.

    Args:
        events: Decoded events in arrival order
        diagnostics: Optional list that receives one SKIPPED_PACKAGE entry
            per excluded package

    Returns:
        Flat list of events ready for the aggregator
    """
    ordered = sorted(events, key=lambda e: e.timestamp)

    groups: dict[str, list[Event]] = {}
    skipped: set[str] = set()
    for event in ordered:
        groups.setdefault(event.package, []).append(event)
        if event.kind == EventKind.SKIP:
            skipped.add(event.package)

    result: list[Event] = []
    for package, package_events in groups.items():
        if package in skipped:
            logger.info(f"Excluding package {package!r}: skip action observed")
            if diagnostics is not None:
                diagnostics.append(
                    Diagnostic(
                        reason=DropReason.SKIPPED_PACKAGE,
                        message=f"package excluded with {len(package_events)} events",
                        package=package,
                    )
                )
            continue
        result.extend(package_events)

    return result


class EventSequencer:
    """Incremental front end for a line-by-line source.

    Feed lines as they arrive; nothing is assumed about buffering of the
    underlying stream. Call `ordered_events()` once the source is exhausted
    (or cut short - partial input is valid).

    Example:
        sequencer = EventSequencer()
        for line in stream:
            sequencer.feed(line)
        events = sequencer.ordered_events()
    """

    def __init__(self):
        self.events: list[Event] = []
        self.non_event_lines: list[str] = []
        self.diagnostics: list[Diagnostic] = []
        self.build_failure: Optional[BuildFailure] = None

    def feed(self, line: str) -> Optional[Event]:
        """Classify one raw line.

        Returns:
            The decoded Event, or None for non-event and malformed lines
        """
        line = line.rstrip("\r\n")

        if not is_json(line):
            self.non_event_lines.append(line)
            if self.build_failure is None and is_build_failure_line(line):
                logger.warning(f"Build failure detected: {line}")
                self.build_failure = BuildFailure(line=line)
            return None

        event = parse_line(line)
        if event is None:
            self.diagnostics.append(
                Diagnostic(
                    reason=DropReason.MALFORMED_EVENT,
                    message="JSON line is not a recognised test event",
                    line=line,
                )
            )
            return None

        self.events.append(event)
        return event

    def feed_many(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.feed(line)

    def ordered_events(self) -> list[Event]:
        """Return the grouped, time-ordered events.

        Raises:
            BuildFailureError: If a build-failure marker was seen
        """
        if self.build_failure is not None:
            raise BuildFailureError(self.build_failure, self.non_event_lines)

        logger.debug(
            f"Sequencing {len(self.events)} events "
            f"({len(self.non_event_lines)} non-event lines)"
        )
        return group_and_order(self.events, self.diagnostics)
