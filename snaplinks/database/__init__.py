"""Database layer for the asset registry."""

from .base import AssetDBBase
from .memory import AssetMemoryDB
from .postgres import AssetPostgresDB
from .models import AssetDraft, AssetRecord, Account

__all__ = [
    "AssetDBBase",
    "AssetMemoryDB",
    "AssetPostgresDB",
    "AssetDraft",
    "AssetRecord",
    "Account",
    "create_database",
]


def create_database(db_url: str, logger=None) -> AssetDBBase:
    """Pick a store implementation from the URL scheme."""
    if db_url.startswith("memory:"):
        return AssetMemoryDB(db_url, logger=logger)
    if db_url.startswith(("postgres://", "postgresql://")):
        return AssetPostgresDB(db_config=db_url, logger=logger)
    raise ValueError(f"Unsupported database URL: {db_url}")
