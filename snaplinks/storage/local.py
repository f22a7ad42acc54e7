"""Local filesystem storage backend."""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import StorageError, ValidationError
from .base import StorageBackend, is_valid_storage_key, make_storage_key


class LocalStorage(StorageBackend):
    """Stores objects under a directory served by the web app."""

    def __init__(
        self,
        root: str,
        public_base_url: str,
        logger: Optional[logging.Logger] = None,
    ):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        self.logger = logger or logging.getLogger(__name__)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, storage_key: str) -> Path:
        if not is_valid_storage_key(storage_key):
            raise ValidationError("Invalid storage key")
        return self.root / storage_key

    async def put_object(
        self,
        owner_scope: str,
        data: bytes,
        content_type: str,
        filename: Optional[str] = None,
    ) -> str:
        key = make_storage_key(owner_scope, filename, content_type)
        path = self._path_for(key)
        try:
            await asyncio.to_thread(self._write_atomic, path, data)
        except OSError as e:
            self.logger.error(f"Error storing {key}: {e}")
            raise StorageError(f"Could not store upload: {e.strerror or e}")

        self.logger.info(f"Stored {len(data)} bytes at {key}")
        return key

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def public_url(self, storage_key: str) -> str:
        return f"{self.public_base_url}/{storage_key}"

    async def exists(self, storage_key: str) -> bool:
        if not is_valid_storage_key(storage_key):
            return False
        return await asyncio.to_thread(self._path_for(storage_key).is_file)

    async def delete_object(self, storage_key: str) -> bool:
        path = self._path_for(storage_key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            self.logger.error(f"Error deleting {storage_key}: {e}")
            raise StorageError(f"Could not delete stored object: {e.strerror or e}")
        self.logger.info(f"Deleted stored object {storage_key}")
        return True

    async def health_check(self) -> bool:
        return self.root.is_dir() and os.access(self.root, os.W_OK)
