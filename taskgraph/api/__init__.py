"""
HTTP API for TaskGraph.
"""

from .app import create_app

__all__ = ["create_app"]
