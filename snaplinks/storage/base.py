"""Abstract base class for object storage backends."""

import mimetypes
import os
import re
import uuid
from abc import ABC, abstractmethod
from typing import Optional

from ..errors import ValidationError


SCOPE_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")
KEY_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}/[A-Za-z0-9_-]{1,64}(\.[A-Za-z0-9]{1,10})?$")


def make_storage_key(owner_scope: str, filename: Optional[str], content_type: Optional[str]) -> str:
    """Build ``<owner>/<random>.<ext>`` for a new object.

    The random part keeps keys unguessable and unrelated to the short code.
    """
    if not SCOPE_RE.match(owner_scope or ""):
        raise ValidationError("Invalid owner scope for storage key")

    ext = os.path.splitext(filename or "")[1].lower()
    if not re.fullmatch(r"\.[a-z0-9]{1,10}", ext):
        ext = mimetypes.guess_extension(content_type or "") or ""
    return f"{owner_scope}/{uuid.uuid4().hex}{ext}"


def is_valid_storage_key(key: str) -> bool:
    return isinstance(key, str) and KEY_RE.match(key) is not None


def key_in_scope(key: str, owner_scope: str) -> bool:
    """True if ``key`` was issued for ``owner_scope``."""
    return is_valid_storage_key(key) and key.split("/", 1)[0] == owner_scope


class StorageBackend(ABC):
    """Object storage for uploaded bytes."""

    @abstractmethod
    async def put_object(
        self,
        owner_scope: str,
        data: bytes,
        content_type: str,
        filename: Optional[str] = None,
    ) -> str:
        """Store bytes durably.

        Args:
            owner_scope: Owner the object belongs to
            data: Object bytes
            content_type: MIME type
            filename: Original file name, used for the extension

        Returns:
            Storage key for the object

        Raises:
            StorageError: If the bytes could not be stored
        """
        pass

    @abstractmethod
    def public_url(self, storage_key: str) -> str:
        """URL the stored object can be fetched from."""
        pass

    @abstractmethod
    async def exists(self, storage_key: str) -> bool:
        """Check that an object is stored under ``storage_key``."""
        pass

    @abstractmethod
    async def delete_object(self, storage_key: str) -> bool:
        """Remove an object.

        Returns:
            True if deleted, False if it was not there
        """
        pass

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass
