"""Entry point for `python -m livecache`.

Usage:
    python -m livecache replay snapshots.jsonl --key id
    python -m livecache serve todos.jsonl users.jsonl
"""

from __future__ import annotations

from livecache.cli import cli

cli()
