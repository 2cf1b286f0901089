"""nodestats command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``nodestats`` script).
"""

from nodestats.cli.main import cli

__all__ = ["cli"]
