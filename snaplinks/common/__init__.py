"""Common utilities for snaplinks."""

from .validators import detect_image_type, is_valid_filename, is_valid_image, is_valid_size
from .headers import build_base_url, extract_bearer_token, get_forwarded_path_prefix
from .url_builder import build_short_url, join_path_prefixes
from .logging_config import setup_logging

__all__ = [
    "detect_image_type",
    "is_valid_filename",
    "is_valid_image",
    "is_valid_size",
    "build_base_url",
    "extract_bearer_token",
    "get_forwarded_path_prefix",
    "build_short_url",
    "join_path_prefixes",
    "setup_logging",
]
