"""Business logic service for screenshot hosting."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, List, Iterable, Tuple

from .shortcode import ShortCodeGenerator
from .registry import LinkRegistry
from .resolver import Resolver, Resolution
from .accounts import SupabaseAccountAdmin
from .database.base import AssetDBBase
from .database.cache import RedisCache
from .database.models import Account, AssetDraft, AssetRecord
from .errors import (
    AuthenticationRequiredError,
    NotFoundError,
    QuotaExceededError,
    SnaplinksError,
    UnauthorizedError,
    ValidationError,
)
from .identity import Requester
from .library import current_month, month_bounds, search_records
from .policy import can_modify
from .storage.base import StorageBackend, key_in_scope
from .common.validators import detect_image_type, is_valid_filename, is_valid_image, is_valid_size


DEFAULT_IMAGE_TYPES = ("image/png", "image/jpeg", "image/gif", "image/webp")


@dataclass
class UploadOutcome:
    """Result of one file in a batch upload: a record or the error."""

    filename: str
    record: Optional[AssetRecord] = None
    error: Optional[SnaplinksError] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class ScreenshotService:
    """Service layer for uploads, links and account administration."""

    def __init__(
        self,
        db: AssetDBBase,
        storage: StorageBackend,
        cache: Optional[RedisCache] = None,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        account_admin: Optional[SupabaseAccountAdmin] = None,
        logger: Optional[logging.Logger] = None,
        max_collision_retries: int = 5,
        max_upload_bytes: int = 10 * 1024 * 1024,
        allowed_image_types: Iterable[str] = DEFAULT_IMAGE_TYPES,
    ):
        """Initialize screenshot service.

        Args:
            db: Database instance
            storage: Object storage backend
            cache: Optional cache instance
            short_code_generator: Optional short code generator
            account_admin: Optional identity-platform admin client
            logger: Optional logger
            max_collision_retries: Maximum retries on short code collision
            max_upload_bytes: Largest accepted upload
            allowed_image_types: Accepted image MIME types
        """
        self.db = db
        self.storage = storage
        self.cache = cache
        self.account_admin = account_admin
        self.logger = logger or logging.getLogger(__name__)
        self.max_upload_bytes = max_upload_bytes
        self.allowed_image_types = tuple(allowed_image_types)
        self.registry = LinkRegistry(
            db=db,
            cache=cache,
            short_code_generator=short_code_generator,
            logger=self.logger,
            max_collision_retries=max_collision_retries,
        )
        self.resolver = Resolver(self.registry, storage, logger=self.logger)

    @staticmethod
    def _require_user(requester: Requester) -> Requester:
        if not isinstance(requester, Requester) or requester.is_anonymous:
            raise AuthenticationRequiredError()
        return requester

    def _require_admin(self, requester: Requester) -> Requester:
        self._require_user(requester)
        if not requester.is_admin:
            raise UnauthorizedError("Administrator role required")
        return requester

    async def upload(
        self,
        requester: Requester,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
        is_public: bool = True,
    ) -> AssetRecord:
        """Store an image and register a short link for it.

        Raises:
            AuthenticationRequiredError: Anonymous uploader
            ValidationError: Bad file name or not an allowed image
            QuotaExceededError: File too large
            StorageError: Bytes could not be stored
            CodeSpaceExhaustedError: No free short code found
        """
        self._require_user(requester)

        ok, error = is_valid_size(len(data), self.max_upload_bytes)
        if not ok:
            if len(data) > self.max_upload_bytes:
                raise QuotaExceededError(error)
            raise ValidationError(error)

        ok, error = is_valid_filename(filename)
        if not ok:
            raise ValidationError(error)

        ok, error = is_valid_image(data, content_type, self.allowed_image_types)
        if not ok:
            raise ValidationError(error)

        mime_type = content_type or self._sniffed_type(data)
        storage_key = await self.storage.put_object(requester.user_id, data, mime_type, filename)

        draft = AssetDraft(
            owner_id=requester.user_id,
            storage_key=storage_key,
            original_name=filename,
            mime_type=mime_type,
            byte_size=len(data),
            is_public=is_public,
        )
        try:
            return await self.registry.register(draft)
        except BaseException:
            # Includes store outages and cancellation of the caller
            await asyncio.shield(self._discard_object(storage_key))
            raise

    async def upload_batch(
        self,
        requester: Requester,
        files: Iterable[Tuple[bytes, str, Optional[str]]],
        is_public: bool = True,
    ) -> List[UploadOutcome]:
        """Upload several images, one outcome per file in input order.

        A file rejected with a SnaplinksError does not stop the rest.
        Anything else (store outage, cancellation) propagates.

        Args:
            requester: The uploader
            files: (data, filename, content_type) triples
            is_public: Visibility applied to every file
        """
        self._require_user(requester)

        outcomes = []
        for data, filename, content_type in files:
            try:
                record = await self.upload(requester, data, filename, content_type, is_public)
            except SnaplinksError as e:
                self.logger.info(f"Upload of {filename!r} rejected: {e.message}")
                outcomes.append(UploadOutcome(filename=filename, error=e))
            else:
                outcomes.append(UploadOutcome(filename=filename, record=record))
        return outcomes

    async def register_stored(
        self,
        requester: Requester,
        storage_key: str,
        original_name: str,
        mime_type: str,
        byte_size: int,
        is_public: bool = True,
    ) -> AssetRecord:
        """Register bytes the caller already put in storage.

        Raises:
            ValidationError: Key outside the caller's scope, missing object,
                or bad metadata
        """
        self._require_user(requester)

        if not key_in_scope(storage_key, requester.user_id):
            raise ValidationError("Storage key does not belong to the caller")
        if mime_type not in self.allowed_image_types:
            raise ValidationError(f"Image type {mime_type} is not allowed")
        if byte_size > self.max_upload_bytes:
            raise QuotaExceededError()
        if not await self.storage.exists(storage_key):
            raise ValidationError("No stored object under this storage key")

        ok, error = is_valid_filename(original_name)
        if not ok:
            raise ValidationError(error)

        return await self.registry.register(
            AssetDraft(
                owner_id=requester.user_id,
                storage_key=storage_key,
                original_name=original_name,
                mime_type=mime_type,
                byte_size=byte_size,
                is_public=is_public,
            )
        )

    async def resolve(self, short_code: str, requester: Requester) -> Resolution:
        """Resolve a short link, counting a view."""
        return await self.resolver.resolve(short_code, requester)

    async def link_info(self, short_code: str, requester: Requester) -> Resolution:
        """Same access rules as resolve, without counting a view."""
        return await self.resolver.resolve(short_code, requester, count_view=False)

    async def get_asset(self, asset_id: str, requester: Requester) -> AssetRecord:
        self._require_user(requester)
        record = await self.registry.get(asset_id)
        if not can_modify(record, requester):
            raise NotFoundError()
        return record

    async def list_assets(
        self,
        requester: Requester,
        month: Optional[str] = None,
        search: Optional[str] = None,
        owner_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[AssetRecord]:
        """List uploads for one calendar month, newest first.

        Admins may list another owner's uploads via ``owner_id``.
        """
        self._require_user(requester)
        if owner_id and owner_id != requester.user_id and not requester.is_admin:
            raise UnauthorizedError("Cannot list another user's uploads")

        start, end = month_bounds(month or current_month())
        records = await self.registry.list_for_owner(
            owner_id or requester.user_id, start=start, end=end, limit=limit
        )
        return search_records(records, search)

    async def set_visibility(self, asset_id: str, is_public: bool, requester: Requester) -> AssetRecord:
        self._require_user(requester)
        return await self.registry.set_visibility(asset_id, is_public, requester)

    async def delete_asset(self, asset_id: str, requester: Requester) -> bool:
        """Delete an asset's record and its stored bytes.

        Returns:
            False if there was no such asset
        """
        self._require_user(requester)
        record = await self.registry.delete(asset_id, requester)
        if record is None:
            return False
        await self._discard_object(record.storage_key)
        return True

    def public_url(self, record: AssetRecord) -> str:
        return self.storage.public_url(record.storage_key)

    async def create_account(
        self,
        requester: Requester,
        email: str,
        password: str,
        username: Optional[str] = None,
    ) -> Account:
        self._require_admin(requester)
        return await self._accounts().create_user(email, password, username)

    async def list_accounts(self, requester: Requester) -> List[Account]:
        self._require_admin(requester)
        return await self._accounts().list_users()

    async def delete_account(self, requester: Requester, user_id: str) -> None:
        self._require_admin(requester)
        if user_id == requester.user_id:
            raise ValidationError("Administrators cannot delete their own account")
        await self._accounts().delete_user(user_id)

    def _accounts(self) -> SupabaseAccountAdmin:
        if self.account_admin is None:
            raise NotFoundError("Account administration is not configured")
        return self.account_admin

    async def get_statistics(self) -> Dict[str, Any]:
        """Get service statistics."""
        db_stats = await self.registry.get_statistics()
        return {
            **db_stats,
            "cache_enabled": self.cache is not None and self.cache.enabled,
            "max_upload_bytes": self.max_upload_bytes,
        }

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check."""
        db_healthy = await self.db.health_check()
        storage_healthy = await self.storage.health_check()
        cache_healthy = await self.cache.ping() if self.cache else True

        return {
            "database": db_healthy,
            "storage": storage_healthy,
            "cache": cache_healthy,
            "overall": db_healthy and storage_healthy and cache_healthy,
        }

    async def _discard_object(self, storage_key: str) -> None:
        try:
            await self.storage.delete_object(storage_key)
        except SnaplinksError as e:
            # Orphaned object, the record is already gone
            self.logger.error(f"Failed to delete stored object {storage_key}: {e.message}")

    @staticmethod
    def _sniffed_type(data: bytes) -> str:
        return detect_image_type(data) or "application/octet-stream"

    async def close(self) -> None:
        """Close service connections."""
        await self.db.close()
        await self.storage.close()
        if self.cache:
            await self.cache.close()
        if self.account_admin:
            await self.account_admin.close()
