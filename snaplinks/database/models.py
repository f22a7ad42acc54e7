"""Data models for the asset registry."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


def _parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class AssetDraft:
    """An upload whose bytes are stored but which has no short code yet."""

    owner_id: str
    storage_key: str
    original_name: str
    mime_type: str
    byte_size: int
    is_public: bool = True


@dataclass
class AssetRecord:
    """Represents an uploaded asset and its link state."""

    id: str
    owner_id: str
    storage_key: str
    original_name: str
    mime_type: str
    byte_size: int
    short_code: str
    is_public: bool = True
    view_count: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_draft(cls, draft: AssetDraft, short_code: str) -> "AssetRecord":
        """Build a new record for a draft with a freshly generated code."""
        return cls(
            id=str(uuid.uuid4()),
            owner_id=draft.owner_id,
            storage_key=draft.storage_key,
            original_name=draft.original_name,
            mime_type=draft.mime_type,
            byte_size=draft.byte_size,
            short_code=short_code,
            is_public=draft.is_public,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "storage_key": self.storage_key,
            "original_name": self.original_name,
            "mime_type": self.mime_type,
            "byte_size": self.byte_size,
            "short_code": self.short_code,
            "is_public": self.is_public,
            "view_count": self.view_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AssetRecord":
        """Create from dictionary or database row."""
        return cls(
            id=str(data["id"]),
            owner_id=str(data["owner_id"]),
            storage_key=data["storage_key"],
            original_name=data["original_name"],
            mime_type=data["mime_type"],
            byte_size=int(data["byte_size"]),
            short_code=data["short_code"],
            is_public=bool(data.get("is_public", True)),
            view_count=int(data.get("view_count") or 0),
            created_at=_parse_datetime(data["created_at"]),
        )


@dataclass
class Account:
    """A user account on the identity platform."""

    id: str
    email: str
    username: Optional[str] = None
    role: str = "user"
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
