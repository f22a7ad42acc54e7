"""In-process store for development and tests."""

import asyncio
import logging
from dataclasses import replace
from typing import Optional, List, Dict, Any
from datetime import datetime

from .base import AssetDBBase
from .models import AssetRecord


class AssetMemoryDB(AssetDBBase):
    """Asset store kept in process memory.

    Every mutation runs under a single lock, which gives the same
    conditional-insert and increment-in-place guarantees as the SQL store
    within one process. Records are copied on the way in and out so callers
    can never mutate stored state.
    """

    def __init__(self, db_config: str = "memory://", logger: Optional[logging.Logger] = None):
        super().__init__(db_config)
        self.logger = logger or logging.getLogger(__name__)
        self._by_id: Dict[str, AssetRecord] = {}
        self._id_by_code: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def insert_if_absent(self, record: AssetRecord) -> bool:
        async with self._lock:
            if record.short_code in self._id_by_code:
                self.logger.warning(f"Short code already exists: {record.short_code}")
                return False
            self._by_id[record.id] = replace(record)
            self._id_by_code[record.short_code] = record.id
            return True

    async def get_by_code(self, short_code: str) -> Optional[AssetRecord]:
        asset_id = self._id_by_code.get(short_code)
        if asset_id is None:
            return None
        return await self.get_by_id(asset_id)

    async def get_by_id(self, asset_id: str) -> Optional[AssetRecord]:
        record = self._by_id.get(asset_id)
        return replace(record) if record else None

    async def increment_view_count(self, short_code: str) -> Optional[AssetRecord]:
        async with self._lock:
            asset_id = self._id_by_code.get(short_code)
            if asset_id is None:
                return None
            record = self._by_id[asset_id]
            record.view_count += 1
            return replace(record)

    async def set_visibility(self, asset_id: str, is_public: bool) -> Optional[AssetRecord]:
        async with self._lock:
            record = self._by_id.get(asset_id)
            if record is None:
                return None
            record.is_public = is_public
            return replace(record)

    async def delete(self, asset_id: str) -> bool:
        async with self._lock:
            record = self._by_id.pop(asset_id, None)
            if record is None:
                return False
            self._id_by_code.pop(record.short_code, None)
            return True

    async def list_for_owner(
        self,
        owner_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 500,
    ) -> List[AssetRecord]:
        records = [
            replace(r) for r in self._by_id.values()
            if r.owner_id == owner_id
            and (start is None or r.created_at >= start)
            and (end is None or r.created_at < end)
        ]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]

    async def get_statistics(self) -> Dict[str, Any]:
        records = list(self._by_id.values())
        return {
            "total_assets": len(records),
            "total_views": sum(r.view_count for r in records),
            "total_owners": len({r.owner_id for r in records}),
            "database": "memory",
            "status": "healthy",
        }

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass
