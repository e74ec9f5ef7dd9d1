"""Web dashboard for problem insights."""

from .app import create_app

__all__ = ["create_app"]
