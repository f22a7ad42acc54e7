"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class RegisterRequest(BaseModel):
    """Register bytes already put in storage."""

    storage_key: str = Field(..., description="Key returned by the storage service", min_length=3, max_length=256)
    original_name: str = Field(..., description="Original file name", min_length=1, max_length=255)
    mime_type: str = Field(..., description="Image MIME type")
    byte_size: int = Field(..., ge=0, description="Size of the stored object in bytes")
    is_public: bool = Field(True, description="Whether anyone with the link may view it")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "storage_key": "3f1c2a9e-user/8d6f0c1b2a3e4f5a6b7c8d9e0f1a2b3c.png",
                    "original_name": "Screenshot 2024-01-01.png",
                    "mime_type": "image/png",
                    "byte_size": 48213,
                    "is_public": True,
                }
            ]
        }
    }


class VisibilityRequest(BaseModel):
    """Change an asset's visibility."""

    is_public: bool = Field(..., description="New visibility")


class AssetResponse(BaseModel):
    """An asset record as seen by its owner."""

    id: str
    short_code: str
    short_url: str = Field(..., description="The complete short URL")
    public_url: str = Field(..., description="Direct URL of the stored image")
    original_name: str
    mime_type: str
    byte_size: int
    size_display: str
    is_public: bool
    view_count: int
    created_at: datetime

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "5b0f8a8e-0a43-4f55-9b59-2f4f0e3c1d7a",
                    "short_code": "aB3dE9xZ",
                    "short_url": "https://snap.example/aB3dE9xZ",
                    "public_url": "https://snap.example/files/u1/8d6f0c1b.png",
                    "original_name": "Screenshot.png",
                    "mime_type": "image/png",
                    "byte_size": 48213,
                    "size_display": "47.08 KB",
                    "is_public": True,
                    "view_count": 3,
                    "created_at": "2024-01-01T12:00:00Z",
                }
            ]
        }
    }


class UploadResult(BaseModel):
    """Outcome of one file in a batch upload."""

    filename: str
    ok: bool
    status_code: int = Field(..., description="Status this file alone would have produced")
    asset: Optional[AssetResponse] = None
    error: Optional[str] = None


class UploadBatchResponse(BaseModel):
    """Per-file results of a batch upload, in request order."""

    uploaded: int
    failed: int
    results: List[UploadResult]


class AssetListResponse(BaseModel):
    """An owner's uploads for one month."""

    month: str
    count: int
    assets: List[AssetResponse]


class LinkInfoResponse(BaseModel):
    """Public information about a short link."""

    short_code: str
    short_url: str
    location: str
    original_name: str
    mime_type: str
    byte_size: int
    view_count: int
    created_at: datetime


class CreateUserRequest(BaseModel):
    """Provision a new account."""

    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=256)
    username: Optional[str] = Field(None, max_length=64)


class AccountResponse(BaseModel):
    """A user account."""

    id: str
    email: str
    username: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None


class AccountListResponse(BaseModel):
    count: int
    users: List[AccountResponse]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    database: str = Field(..., description="Database status")
    storage: str = Field(..., description="Storage status")
    cache: str = Field(..., description="Cache status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error message")
    detail: Optional[Dict[str, Any]] = Field(None, description="Detailed error information")


class StatisticsResponse(BaseModel):
    """Statistics response."""

    total_assets: int
    total_views: int
    total_owners: int
    database: str
    cache_enabled: bool
    max_upload_bytes: int
