"""Middleware for the snaplinks web app."""

from .logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
