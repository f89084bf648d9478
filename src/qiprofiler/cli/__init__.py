"""Command-line interface."""

from qiprofiler.cli.main import app

__all__ = ["app"]
