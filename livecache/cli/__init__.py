"""livecache command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``livecache`` script).
"""

from livecache.cli.main import cli

__all__ = ["cli"]
