"""Validation utilities for uploads."""

import os
from typing import Iterable, Optional, Tuple


# Leading bytes of each accepted image format
IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)

MAX_FILENAME_LENGTH = 255


def detect_image_type(data: bytes) -> Optional[str]:
    """Identify an image format from its first bytes.

    Args:
        data: File contents (only the header is inspected)

    Returns:
        MIME type, or None if the bytes are not a recognised image
    """
    for signature, mime_type in IMAGE_SIGNATURES:
        if data.startswith(signature):
            return mime_type
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def is_valid_filename(filename: Optional[str]) -> Tuple[bool, str]:
    """Validate an uploaded file's original name.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not filename or not filename.strip():
        return False, "File name is required"

    if len(filename) > MAX_FILENAME_LENGTH:
        return False, f"File name is too long (max {MAX_FILENAME_LENGTH} characters)"

    if os.path.basename(filename) != filename or "\x00" in filename:
        return False, "File name must not contain path separators"

    return True, ""


def is_valid_image(
    data: bytes,
    declared_type: Optional[str],
    allowed_types: Iterable[str],
) -> Tuple[bool, str]:
    """Validate that an upload is an allowed image and matches its declared type.

    Args:
        data: File contents
        declared_type: Content type the client sent
        allowed_types: MIME types the service accepts

    Returns:
        Tuple of (is_valid, error_message)
    """
    allowed = set(allowed_types)
    detected = detect_image_type(data)

    if detected is None:
        return False, "File is not a supported image (PNG, JPEG, GIF, WEBP)"

    if detected not in allowed:
        return False, f"Image type {detected} is not allowed"

    if declared_type and declared_type != detected:
        return False, f"Declared type {declared_type} does not match file contents ({detected})"

    return True, ""


def is_valid_size(size: int, max_bytes: int) -> Tuple[bool, str]:
    """Validate an upload's size.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if size <= 0:
        return False, "File is empty"

    if size > max_bytes:
        return False, f"File is too large (max {max_bytes // (1024 * 1024)}MB)"

    return True, ""
