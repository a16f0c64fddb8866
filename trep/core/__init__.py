"""Core event-aggregation engine for trep.

The event pipeline is headless: no CLI or terminal dependencies.
"""

from trep.core.aggregator import Aggregator
from trep.core.engine import ReportEngine, build_summary
from trep.core.models import (
    Diagnostic,
    DropReason,
    Event,
    EventKind,
    PackageResult,
    Summary,
    TestResult,
)
from trep.core.resolver import LeafNameResolver, PathResolver, get_resolver
from trep.core.sequencer import BuildFailureError, EventSequencer

__all__ = [
    "Aggregator",
    "ReportEngine",
    "build_summary",
    "Diagnostic",
    "DropReason",
    "Event",
    "EventKind",
    "PackageResult",
    "Summary",
    "TestResult",
    "LeafNameResolver",
    "PathResolver",
    "get_resolver",
    "BuildFailureError",
    "EventSequencer",
]
