"""Link registry: durable short code -> asset mapping."""

import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from .shortcode import ShortCodeGenerator
from .database.base import AssetDBBase
from .database.cache import RedisCache
from .database.models import AssetDraft, AssetRecord
from .errors import (
    CodeSpaceExhaustedError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from .identity import Requester
from .policy import can_modify


class LinkRegistry:
    """Registers assets under unique short codes and manages their records."""

    def __init__(
        self,
        db: AssetDBBase,
        cache: Optional[RedisCache] = None,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        logger: Optional[logging.Logger] = None,
        max_collision_retries: int = 5,
    ):
        """Initialize link registry.

        Args:
            db: Database instance
            cache: Optional cache instance
            short_code_generator: Optional short code generator
            logger: Optional logger
            max_collision_retries: Retries allowed after the first collision
        """
        self.db = db
        self.cache = cache
        self.generator = short_code_generator or ShortCodeGenerator()
        self.logger = logger or logging.getLogger(__name__)
        self.max_collision_retries = max_collision_retries

    async def register(self, draft: AssetDraft) -> AssetRecord:
        """Persist a new record under a freshly generated short code.

        Args:
            draft: Stored-but-unregistered asset

        Returns:
            The created record

        Raises:
            ValidationError: If the draft is incomplete
            CodeSpaceExhaustedError: If every attempt collided
        """
        self._validate_draft(draft)

        attempts = self.max_collision_retries + 1
        for attempt in range(1, attempts + 1):
            record = AssetRecord.from_draft(draft, self.generator.generate())
            try:
                await self._insert(record)
            except ConflictError:
                self.logger.debug(
                    f"Short code collision on attempt {attempt}/{attempts}: {record.short_code}"
                )
                continue

            self.logger.info(
                f"Registered asset {record.id} as {record.short_code} for owner {record.owner_id}"
            )
            return record

        self.logger.error(f"Gave up after {attempts} short code collisions")
        raise CodeSpaceExhaustedError(details={"attempts": attempts})

    async def _insert(self, record: AssetRecord) -> None:
        if not await self.db.insert_if_absent(record):
            raise ConflictError(details={"short_code": record.short_code})

    async def lookup(self, short_code: str, fresh: bool = False) -> AssetRecord:
        """Read the record for a short code. No side effects.

        Args:
            short_code: The code to look up
            fresh: Skip the cache, e.g. when the view count will be shown

        Raises:
            NotFoundError: If no record has this code
        """
        if not ShortCodeGenerator.is_valid_format(short_code):
            raise NotFoundError()

        generation = None
        if self.cache:
            if not fresh:
                cached = await self.cache.get_record(short_code)
                if cached:
                    self.logger.debug(f"Cache hit for {short_code}")
                    return cached
            # Must be read before the row
            generation = await self.cache.generation(short_code)

        record = await self.db.get_by_code(short_code)
        if record is None:
            raise NotFoundError()

        if generation is not None:
            await self.cache.set_record(record, generation)
        return record

    async def get(self, asset_id: str) -> AssetRecord:
        """Read a record by id.

        Raises:
            NotFoundError: If no record has this id
        """
        record = await self.db.get_by_id(asset_id)
        if record is None:
            raise NotFoundError()
        return record

    async def set_visibility(self, asset_id: str, is_public: bool, requester: Requester) -> AssetRecord:
        """Change whether an asset can be resolved by anyone.

        Raises:
            NotFoundError: If no record has this id
            UnauthorizedError: If the requester is neither owner nor admin
        """
        record = await self.get(asset_id)
        if not can_modify(record, requester):
            raise UnauthorizedError()

        updated = await self.db.set_visibility(asset_id, is_public)
        if updated is None:
            raise NotFoundError()

        if self.cache:
            await self.cache.invalidate(updated.short_code)
        self.logger.info(f"Asset {asset_id} visibility set to {'public' if is_public else 'private'}")
        return updated

    async def delete(self, asset_id: str, requester: Requester) -> Optional[AssetRecord]:
        """Remove a record.

        Deleting an id that does not exist is a no-op.

        Returns:
            The removed record, or None if there was nothing to remove

        Raises:
            UnauthorizedError: If the requester is neither owner nor admin
        """
        record = await self.db.get_by_id(asset_id)
        if record is None:
            return None
        if not can_modify(record, requester):
            raise UnauthorizedError()

        if self.cache:
            await self.cache.invalidate(record.short_code)
        if not await self.db.delete(asset_id):
            return None

        self.logger.info(f"Deleted asset {asset_id} ({record.short_code})")
        return record

    async def list_for_owner(
        self,
        owner_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 500,
    ) -> List[AssetRecord]:
        return await self.db.list_for_owner(owner_id, start=start, end=end, limit=limit)

    async def get_statistics(self) -> Dict[str, Any]:
        return await self.db.get_statistics()

    @staticmethod
    def _validate_draft(draft: AssetDraft) -> None:
        missing = [
            name for name in ("owner_id", "storage_key", "original_name", "mime_type")
            if not getattr(draft, name)
        ]
        if missing:
            raise ValidationError(f"Missing asset fields: {', '.join(missing)}")
        if draft.byte_size is None or draft.byte_size < 0:
            raise ValidationError("byte_size must be a non-negative integer")
