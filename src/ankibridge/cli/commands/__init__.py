"""CLI command modules."""

from ankibridge.cli.commands import config, operations, serve

__all__ = [
    "config",
    "operations",
    "serve",
]
