"""Short link resolution with view accounting."""

import logging
from dataclasses import dataclass
from typing import Optional

from .database.models import AssetRecord
from .errors import ForbiddenError, NotFoundError
from .policy import permits
from .registry import LinkRegistry
from .storage.base import StorageBackend


@dataclass
class Resolution:
    """A permitted resolution: where to send the caller, and the record."""

    location: str
    record: AssetRecord


class Resolver:
    """Translate a short code into an authorized location."""

    def __init__(
        self,
        registry: LinkRegistry,
        storage: StorageBackend,
        logger: Optional[logging.Logger] = None,
    ):
        self.registry = registry
        self.storage = storage
        self.logger = logger or logging.getLogger(__name__)

    async def resolve(self, short_code: str, requester, count_view: bool = True) -> Resolution:
        """Resolve a short code for a requester.

        Args:
            short_code: The code from the link
            requester: Who is asking (anything malformed counts as anonymous)
            count_view: Whether this resolution counts as a view

        Returns:
            Resolution with the asset location and its record. When a view
            is counted, the record reflects the increment.

        Raises:
            NotFoundError: Unknown code
            ForbiddenError: Known code the requester may not see
        """
        record = await self.registry.lookup(short_code)

        if not permits(record, requester):
            self.logger.debug(f"Resolution of {short_code} denied")
            raise ForbiddenError()

        if count_view:
            counted = await self.registry.db.increment_view_count(short_code)
            if counted is None:
                # Deleted between lookup and increment
                if self.registry.cache:
                    await self.registry.cache.invalidate(short_code)
                raise NotFoundError()
            record = counted
        else:
            record = await self.registry.lookup(short_code, fresh=True)

        return Resolution(location=self.storage.public_url(record.storage_key), record=record)
