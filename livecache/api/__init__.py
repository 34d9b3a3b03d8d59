"""REST API layer for livecache.

Exposes:
    create_app -- FastAPI application factory.
"""

from livecache.api.app import create_app

__all__ = ["create_app"]
