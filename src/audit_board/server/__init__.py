"""HTTP server for the audit board."""

from .api import create_app

__all__ = ["create_app"]
