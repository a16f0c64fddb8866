"""Shared pytest fixtures for trep tests."""

import json
from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from trep.core.models import Event, EventKind

BASE_TIME = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for Events; `t` is seconds after BASE_TIME.

    Example:
        make_event("run", "pkgA", "TestX", t=1)
    """

    def _make(
        kind: str,
        package: str = "pkgA",
        test: str = "",
        output: str = "",
        elapsed: float = 0.0,
        t: float = 0,
    ) -> Event:
        return Event(
            timestamp=BASE_TIME + timedelta(seconds=t),
            kind=EventKind(kind),
            package=package,
            test=test,
            output=output,
            elapsed=elapsed,
        )

    return _make


@pytest.fixture
def go_line() -> Callable[..., str]:
    """Factory for raw `go test -json` lines using the runner's keys."""

    def _line(
        action: str,
        package: str = "pkgA",
        test: str = "",
        output: str = "",
        elapsed: float = None,
        t: float = 0,
    ) -> str:
        data = {
            "Time": (BASE_TIME + timedelta(seconds=t)).isoformat().replace("+00:00", "Z"),
            "Action": action,
            "Package": package,
        }
        if test:
            data["Test"] = test
        if output:
            data["Output"] = output
        if elapsed is not None:
            data["Elapsed"] = elapsed
        return json.dumps(data)

    return _line


@pytest.fixture
def passing_run(go_line) -> list[str]:
    """A single package with one passing test."""
    return [
        go_line("start", t=0),
        go_line("run", test="TestOK", t=1),
        go_line("output", test="TestOK", output="=== RUN   TestOK\n", t=1),
        go_line("output", test="TestOK", output="--- PASS: TestOK (0.00s)\n", t=2),
        go_line("pass", test="TestOK", elapsed=0.5, t=2),
        go_line("output", output="PASS\n", t=3),
        go_line("pass", elapsed=1.0, t=3),
    ]


@pytest.fixture
def failing_run(go_line) -> list[str]:
    """One package with a table test: one sub-test passes, one fails."""
    return [
        go_line("start", t=0),
        go_line("run", test="TestExample", t=1),
        go_line("run", test="TestExample/pass_test", t=2),
        go_line("pass", test="TestExample/pass_test", elapsed=0.1, t=3),
        go_line("run", test="TestExample/fail_test", t=4),
        go_line(
            "output",
            test="TestExample/fail_test",
            output="    Error:      \tNot equal: \n",
            t=5,
        ),
        go_line("output", test="TestExample/fail_test", output="    Test:       \tTestExample/fail_test\n", t=5),
        go_line("fail", test="TestExample/fail_test", elapsed=0.2, t=6),
        go_line("fail", test="TestExample", elapsed=0.3, t=7),
        go_line("output", output="FAIL\n", t=8),
        go_line("fail", elapsed=1.5, t=8),
    ]
