"""Process invocation for go test runs."""

from trep.runner.go_test import (
    GoTestProcess,
    UnsupportedCommandError,
    prepare_command,
)

__all__ = ["GoTestProcess", "UnsupportedCommandError", "prepare_command"]
