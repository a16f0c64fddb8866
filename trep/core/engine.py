"""Report engine: raw lines in, Summary out.

Data flows one way:
    raw lines -> EventSequencer -> ordered events -> Aggregator -> Summary

The only fatal condition is a build failure, raised as BuildFailureError
from `finish()`. Everything else degrades into Diagnostics.
"""

import logging
from typing import Iterable, Optional

from trep.core.aggregator import Aggregator
from trep.core.models import Diagnostic, Summary
from trep.core.resolver import TestResolver
from trep.core.sequencer import EventSequencer

logger = logging.getLogger(__name__)


class ReportEngine:
    """Drives one run through the sequencer and the aggregator.

    Example:
        engine = ReportEngine()
        for line in process.lines():
            engine.feed(line)
        summary = engine.finish()
    """

    def __init__(self, resolver: Optional[TestResolver] = None):
        self.sequencer = EventSequencer()
        self.aggregator = Aggregator(resolver=resolver)
        self._finished = False

    def feed(self, line: str) -> None:
        self.sequencer.feed(line)

    def feed_many(self, lines: Iterable[str]) -> None:
        self.sequencer.feed_many(lines)

    @property
    def non_event_lines(self) -> list[str]:
        return self.sequencer.non_event_lines

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return self.sequencer.diagnostics + self.aggregator.diagnostics

    def finish(self) -> Summary:
        """Sequence and aggregate everything fed so far.

        Returns:
            The Summary (partial if the stream was cut short)

        Raises:
            BuildFailureError: If the run reported a build failure
        """
        if self._finished:
            return self.aggregator.summary

        events = self.sequencer.ordered_events()
        summary = self.aggregator.process_all(events)
        self._finished = True

        logger.info(
            f"Aggregated {len(events)} events into {len(summary.package_results)} packages "
            f"({summary.total_passed} passed, {summary.total_failed} failed)"
        )
        if self.diagnostics:
            logger.info(f"{len(self.diagnostics)} inputs were dropped, see diagnostics")
        return summary


def build_summary(lines: Iterable[str], resolver: Optional[TestResolver] = None) -> Summary:
    """Build a Summary from a complete line source.

    Raises:
        BuildFailureError: If the run reported a build failure
    """
    engine = ReportEngine(resolver=resolver)
    engine.feed_many(lines)
    return engine.finish()
