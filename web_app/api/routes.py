"""API routes implementation."""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import JSONResponse, Response

from snaplinks.database.models import Account, AssetRecord
from snaplinks.identity import Requester
from snaplinks.library import current_month, format_file_size
from snaplinks.service import ScreenshotService

from ..dependencies import get_requester, get_service, short_url_for
from .schemas import (
    AccountListResponse,
    AccountResponse,
    AssetListResponse,
    AssetResponse,
    CreateUserRequest,
    ErrorResponse,
    HealthResponse,
    LinkInfoResponse,
    RegisterRequest,
    StatisticsResponse,
    UploadBatchResponse,
    UploadResult,
    VisibilityRequest,
)

router = APIRouter()

AUTH_ERRORS = {
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Not the owner"},
}


def _asset_response(request: Request, service: ScreenshotService, record: AssetRecord) -> AssetResponse:
    return AssetResponse(
        id=record.id,
        short_code=record.short_code,
        short_url=short_url_for(request, record.short_code),
        public_url=service.public_url(record),
        original_name=record.original_name,
        mime_type=record.mime_type,
        byte_size=record.byte_size,
        size_display=format_file_size(record.byte_size),
        is_public=record.is_public,
        view_count=record.view_count,
        created_at=record.created_at,
    )


def _account_response(account: Account) -> AccountResponse:
    return AccountResponse(**account.to_dict())


@router.post(
    "/assets",
    response_model=AssetResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **AUTH_ERRORS,
        400: {"model": ErrorResponse, "description": "Invalid storage key or metadata"},
        503: {"model": ErrorResponse, "description": "No free short code"},
    },
    summary="Register stored asset",
    description="Create a short link for an image already uploaded to storage.",
)
async def register_asset(
    request: Request,
    body: RegisterRequest,
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    record = await service.register_stored(
        requester,
        storage_key=body.storage_key,
        original_name=body.original_name,
        mime_type=body.mime_type,
        byte_size=body.byte_size,
        is_public=body.is_public,
    )
    return _asset_response(request, service, record)


@router.post(
    "/uploads",
    response_model=AssetResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **AUTH_ERRORS,
        400: {"model": ErrorResponse, "description": "Not an allowed image"},
        413: {"model": ErrorResponse, "description": "File too large"},
        502: {"model": ErrorResponse, "description": "Storage failure"},
    },
    summary="Upload image",
    description="Upload an image and get a short link for it.",
)
async def upload_asset(
    request: Request,
    file: UploadFile = File(...),
    is_public: bool = Form(True),
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    # One byte past the limit is enough to reject oversized files
    data = await file.read(service.max_upload_bytes + 1)
    record = await service.upload(
        requester,
        data=data,
        filename=file.filename or "",
        content_type=file.content_type,
        is_public=is_public,
    )
    return _asset_response(request, service, record)


@router.post(
    "/uploads/batch",
    response_model=UploadBatchResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **AUTH_ERRORS,
        400: {"model": UploadBatchResponse, "description": "Every file was rejected"},
    },
    summary="Upload several images",
    description=(
        "Upload several images at once. Each file succeeds or fails on its own; "
        "the response lists a result per file in request order."
    ),
)
async def upload_assets(
    request: Request,
    files: List[UploadFile] = File(...),
    is_public: bool = Form(True),
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    batch = [
        (await f.read(service.max_upload_bytes + 1), f.filename or "", f.content_type)
        for f in files
    ]
    outcomes = await service.upload_batch(requester, batch, is_public=is_public)

    results = [
        UploadResult(
            filename=o.filename,
            ok=True,
            status_code=status.HTTP_201_CREATED,
            asset=_asset_response(request, service, o.record),
        )
        if o.ok
        else UploadResult(
            filename=o.filename,
            ok=False,
            status_code=o.error.status_code,
            error=o.error.message,
        )
        for o in outcomes
    ]
    uploaded = sum(1 for r in results if r.ok)
    body = UploadBatchResponse(uploaded=uploaded, failed=len(results) - uploaded, results=results)

    if uploaded == 0:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump(mode="json"))
    return body


@router.get(
    "/assets",
    response_model=AssetListResponse,
    responses=AUTH_ERRORS,
    summary="List my uploads",
    description="List the caller's uploads for a month (default: current), optionally filtered by name.",
)
async def list_assets(
    request: Request,
    month: Optional[str] = Query(None, description="Month as YYYY-MM"),
    search: Optional[str] = Query(None, max_length=200),
    owner_id: Optional[str] = Query(None, description="Admins only: list another user's uploads"),
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    month = month or current_month()
    records = await service.list_assets(requester, month=month, search=search, owner_id=owner_id)
    return AssetListResponse(
        month=month,
        count=len(records),
        assets=[_asset_response(request, service, r) for r in records],
    )


@router.get(
    "/assets/{asset_id}",
    response_model=AssetResponse,
    responses={**AUTH_ERRORS, 404: {"model": ErrorResponse}},
    summary="Get my upload",
)
async def get_asset(
    request: Request,
    asset_id: str,
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    record = await service.get_asset(asset_id, requester)
    return _asset_response(request, service, record)


@router.patch(
    "/assets/{asset_id}",
    response_model=AssetResponse,
    responses={**AUTH_ERRORS, 404: {"model": ErrorResponse}},
    summary="Set visibility",
    description="Make an asset public or private. Owner or administrator only.",
)
async def set_visibility(
    request: Request,
    asset_id: str,
    body: VisibilityRequest,
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    record = await service.set_visibility(asset_id, body.is_public, requester)
    return _asset_response(request, service, record)


@router.delete(
    "/assets/{asset_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=AUTH_ERRORS,
    summary="Delete asset",
    description="Delete an asset and its short link. Deleting an unknown id succeeds.",
)
async def delete_asset(
    asset_id: str,
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    await service.delete_asset(asset_id, requester)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/links/{short_code}",
    response_model=LinkInfoResponse,
    responses={404: {"model": ErrorResponse, "description": "Short code not found"}},
    summary="Get link information",
    description="Information about a short link, without counting a view.",
)
async def get_link_info(
    request: Request,
    short_code: str,
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    resolution = await service.link_info(short_code, requester)
    record = resolution.record
    return LinkInfoResponse(
        short_code=record.short_code,
        short_url=short_url_for(request, record.short_code),
        location=resolution.location,
        original_name=record.original_name,
        mime_type=record.mime_type,
        byte_size=record.byte_size,
        view_count=record.view_count,
        created_at=record.created_at,
    )


@router.get(
    "/admin/users",
    response_model=AccountListResponse,
    responses=AUTH_ERRORS,
    summary="List users",
)
async def list_users(
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    accounts = await service.list_accounts(requester)
    return AccountListResponse(count=len(accounts), users=[_account_response(a) for a in accounts])


@router.post(
    "/admin/users",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**AUTH_ERRORS, 400: {"model": ErrorResponse}},
    summary="Create user",
)
async def create_user(
    body: CreateUserRequest,
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    account = await service.create_account(
        requester, email=body.email, password=body.password, username=body.username
    )
    return _account_response(account)


@router.delete(
    "/admin/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, 404: {"model": ErrorResponse}},
    summary="Delete user",
)
async def delete_user(
    user_id: str,
    service: ScreenshotService = Depends(get_service),
    requester: Requester = Depends(get_requester),
):
    await service.delete_account(requester, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/stats",
    response_model=StatisticsResponse,
    summary="Get statistics",
    description="Get service-wide statistics.",
)
async def get_statistics(service: ScreenshotService = Depends(get_service)):
    stats = await service.get_statistics()
    return StatisticsResponse(**stats)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the service and its collaborators are healthy.",
)
async def health_check(service: ScreenshotService = Depends(get_service)):
    health = await service.health_check()

    def label(ok: bool) -> str:
        return "healthy" if ok else "unhealthy"

    return HealthResponse(
        status=label(health["overall"]),
        database=label(health["database"]),
        storage=label(health["storage"]),
        cache=label(health["cache"]),
        timestamp=datetime.now(timezone.utc),
    )
