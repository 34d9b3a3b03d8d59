"""livecache: keyed reconciliation of live-query change streams."""

__version__ = "0.1.0"
