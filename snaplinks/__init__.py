"""Core logic for snaplinks: short links for hosted screenshots."""

from .shortcode import ShortCodeGenerator
from .registry import LinkRegistry
from .resolver import Resolver, Resolution
from .policy import permits
from .service import ScreenshotService

__all__ = [
    "ShortCodeGenerator",
    "LinkRegistry",
    "Resolver",
    "Resolution",
    "permits",
    "ScreenshotService",
]
