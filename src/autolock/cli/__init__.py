"""CLI package for autolock."""

from autolock.cli.main import main, parse_arguments

__all__ = ["main", "parse_arguments"]
