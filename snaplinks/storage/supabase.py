"""Supabase Storage backend."""

import logging
from typing import Optional

import httpx

from ..errors import StorageError, ValidationError
from .base import StorageBackend, is_valid_storage_key, make_storage_key


class SupabaseStorage(StorageBackend):
    """Stores objects in a Supabase Storage bucket over its REST API."""

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "screenshots",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.logger = logger or logging.getLogger(__name__)
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def _headers(self) -> dict:
        return {"apikey": self.service_key, "Authorization": f"Bearer {self.service_key}"}

    def _object_url(self, storage_key: str) -> str:
        if not is_valid_storage_key(storage_key):
            raise ValidationError("Invalid storage key")
        return f"{self.supabase_url}/storage/v1/object/{self.bucket}/{storage_key}"

    async def put_object(
        self,
        owner_scope: str,
        data: bytes,
        content_type: str,
        filename: Optional[str] = None,
    ) -> str:
        key = make_storage_key(owner_scope, filename, content_type)
        try:
            response = await self.client.post(
                self._object_url(key),
                content=data,
                headers={**self._headers, "Content-Type": content_type, "x-upsert": "false"},
            )
        except httpx.HTTPError as e:
            self.logger.error(f"Upload of {key} failed: {e}")
            raise StorageError(f"Storage unreachable: {e}")

        if response.status_code not in (200, 201):
            self.logger.error(f"Upload of {key} rejected: {response.status_code} {response.text}")
            raise StorageError(
                "Storage rejected the upload",
                details={"status": response.status_code},
            )

        self.logger.info(f"Stored {len(data)} bytes at {self.bucket}/{key}")
        return key

    def public_url(self, storage_key: str) -> str:
        return f"{self.supabase_url}/storage/v1/object/public/{self.bucket}/{storage_key}"

    async def exists(self, storage_key: str) -> bool:
        if not is_valid_storage_key(storage_key):
            return False
        try:
            response = await self.client.head(self._object_url(storage_key), headers=self._headers)
        except httpx.HTTPError as e:
            self.logger.error(f"Existence check for {storage_key} failed: {e}")
            raise StorageError(f"Storage unreachable: {e}")
        return response.status_code == 200

    async def delete_object(self, storage_key: str) -> bool:
        try:
            response = await self.client.delete(self._object_url(storage_key), headers=self._headers)
        except httpx.HTTPError as e:
            self.logger.error(f"Delete of {storage_key} failed: {e}")
            raise StorageError(f"Storage unreachable: {e}")

        if response.status_code in (400, 404):
            return False
        if response.status_code != 200:
            raise StorageError("Storage rejected the delete", details={"status": response.status_code})
        self.logger.info(f"Deleted stored object {self.bucket}/{storage_key}")
        return True

    async def health_check(self) -> bool:
        try:
            response = await self.client.get(
                f"{self.supabase_url}/storage/v1/bucket/{self.bucket}", headers=self._headers
            )
            return response.status_code == 200
        except httpx.HTTPError as e:
            self.logger.error(f"Storage health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()
