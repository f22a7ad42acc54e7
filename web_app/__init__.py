"""Web application for snaplinks."""

from .app_factory import create_app

__all__ = ["create_app"]
