"""REST status API for nodestats.

Exposes:
    create_app -- FastAPI application factory.
"""

from nodestats.api.app import create_app

__all__ = ["create_app"]
