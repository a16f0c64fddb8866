"""Data models for the trep aggregation engine.

Events are decoded from the `go test -json` wire format with pydantic;
the result tree (Summary -> PackageResult -> TestResult) is made of plain
dataclasses that the aggregator mutates while it consumes events.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Go emits nanosecond fractions; datetime only holds microseconds
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class EventKind(str, Enum):
    """Test lifecycle actions understood by the engine.

    Uses str mixin so values compare equal to the runner's action strings.
    """

    START = "start"
    RUN = "run"
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    OUTPUT = "output"


class Event(BaseModel):
    """One decoded line of `go test -json` output.

    Fields can be populated either from the runner's keys (`Time`, `Action`,
    `Package`, `Test`, `Output`, `Elapsed`) or by field name.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timestamp: datetime = Field(alias="Time")
    kind: EventKind = Field(alias="Action")
    package: str = Field("", alias="Package")
    test: str = Field("", alias="Test")
    output: str = Field("", alias="Output")
    elapsed: float = Field(0.0, alias="Elapsed")

    @field_validator("timestamp", mode="before")
    @classmethod
    def truncate_fraction(cls, v: Any) -> Any:
        """Trim sub-microsecond digits from RFC3339 strings."""
        if isinstance(v, str):
            return _FRACTION_RE.sub(r"\1", v)
        return v

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC so events stay comparable."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("package", "test", "output", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("elapsed", mode="before")
    @classmethod
    def none_to_zero(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @property
    def is_package_level(self) -> bool:
        return self.test == ""

    @property
    def leaf_name(self) -> str:
        """Final "/"-delimited segment of the test path."""
        return self.test.rsplit("/", 1)[-1]

    @property
    def parent_path(self) -> str:
        """Test path without its leaf segment ("" for root tests)."""
        if "/" not in self.test:
            return ""
        return self.test.rsplit("/", 1)[0]


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class TestResult:
    """A test or sub-test.

    Attributes:
        name: Leaf segment of the test path (not the full path)
        start_time: Time of the `run` event
        end_time: Time of the completion event
        elapsed: Duration reported by the runner, in seconds
        passed: Optimistic until a failure is observed
        output: Captured output lines, append-only
        subtests: Child tests, exclusively owned by this node
    """

    __test__ = False  # Not a test class - keeps pytest from collecting it

    name: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    elapsed: float = 0.0
    passed: bool = True
    output: list[str] = field(default_factory=list)
    subtests: list["TestResult"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.subtests

    def all_subtests_passed(self) -> bool:
        """Logical AND of every descendant's `passed` flag."""
        for subtest in self.subtests:
            if not subtest.passed or not subtest.all_subtests_passed():
                return False
        return True

    def walk(self, depth: int = 0):
        """Yield (depth, node) pairs depth-first, starting with this node."""
        yield depth, self
        for subtest in self.subtests:
            yield from subtest.walk(depth + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start_time": _isoformat(self.start_time),
            "end_time": _isoformat(self.end_time),
            "elapsed": self.elapsed,
            "passed": self.passed,
            "output": list(self.output),
            "subtests": [s.to_dict() for s in self.subtests],
        }


@dataclass
class PackageResult:
    """One test binary's run.

    `test_results` maps the full slash-delimited path of each root test to
    its node; nested tests hang off their parent's `subtests`.
    """

    package_name: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    elapsed: float = 0.0
    passed: bool = False
    output: list[str] = field(default_factory=list)
    test_results: dict[str, TestResult] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "package_name": self.package_name,
            "start_time": _isoformat(self.start_time),
            "end_time": _isoformat(self.end_time),
            "elapsed": self.elapsed,
            "passed": self.passed,
            "output": list(self.output),
            "test_results": {k: v.to_dict() for k, v in self.test_results.items()},
        }


@dataclass
class Summary:
    """Aggregated result of one run.

    Note: `total_packages` and `total_passed` are bumped once per `run`
    event, i.e. they count tests, not packages. `fail` moves one unit from
    `total_passed` to `total_failed`. A test that never completes therefore
    stays counted as passed.
    """

    total_packages: int = 0
    total_passed: int = 0
    total_failed: int = 0
    package_results: list[PackageResult] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return self.total_failed > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_packages": self.total_packages,
            "total_passed": self.total_passed,
            "total_failed": self.total_failed,
            "package_results": [p.to_dict() for p in self.package_results],
        }


class DropReason(str, Enum):
    """Why the engine discarded part of its input."""

    MALFORMED_EVENT = "malformed_event"
    SKIPPED_PACKAGE = "skipped_package"
    ORPHANED_SUBTEST = "orphaned_subtest"
    NO_CURRENT_TEST = "no_current_test"
    UNKNOWN_TEST = "unknown_test"


@dataclass
class Diagnostic:
    """Record of something the engine dropped instead of raising."""

    reason: DropReason
    message: str
    package: str = ""
    test: str = ""
    line: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason.value,
            "message": self.message,
            "package": self.package,
            "test": self.test,
            "line": self.line,
        }
