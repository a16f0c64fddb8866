"""trep command-line interface."""

from trep.cli.app import app

__all__ = ["app"]
