"""Abstract base class for asset registry storage implementations."""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any
from datetime import datetime

from .models import AssetRecord


class AssetDBBase(ABC):
    """Abstract base class for asset metadata operations.

    Implementations must provide two atomic primitives: a conditional insert
    that refuses to overwrite an existing short code, and an in-place view
    counter increment. Callers never read-modify-write either field.
    """

    def __init__(self, db_config: str):
        """Initialize database connection.

        Args:
            db_config: Database connection string
        """
        self.db_config = db_config

    @abstractmethod
    async def insert_if_absent(self, record: AssetRecord) -> bool:
        """Insert a record unless its short code is already taken.

        Args:
            record: The fully populated record to insert

        Returns:
            True if inserted, False if the short code already exists
        """
        pass

    @abstractmethod
    async def get_by_code(self, short_code: str) -> Optional[AssetRecord]:
        """Get the record for a short code.

        Args:
            short_code: The short code to lookup

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_id(self, asset_id: str) -> Optional[AssetRecord]:
        """Get the record for an asset id.

        Args:
            asset_id: The asset id to lookup

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def increment_view_count(self, short_code: str) -> Optional[AssetRecord]:
        """Atomically increment the view count for a short code.

        Args:
            short_code: The short code to update

        Returns:
            The record after the increment, or None if the code is gone
        """
        pass

    @abstractmethod
    async def set_visibility(self, asset_id: str, is_public: bool) -> Optional[AssetRecord]:
        """Update the visibility flag.

        Args:
            asset_id: The asset to update
            is_public: New visibility

        Returns:
            The updated record, or None if not found
        """
        pass

    @abstractmethod
    async def delete(self, asset_id: str) -> bool:
        """Delete an asset record.

        Args:
            asset_id: The asset to delete

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def list_for_owner(
        self,
        owner_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 500,
    ) -> List[AssetRecord]:
        """List an owner's records, newest first.

        Args:
            owner_id: Owner to list for
            start: Inclusive lower bound on created_at
            end: Exclusive upper bound on created_at
            limit: Maximum number of records to return

        Returns:
            List of records
        """
        pass

    @abstractmethod
    async def get_statistics(self) -> Dict[str, Any]:
        """Get database statistics.

        Returns:
            Dictionary with statistics (total_assets, total_views, etc.)
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close database connections."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if database is healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass
