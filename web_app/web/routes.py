"""Web interface routes implementation."""

import os

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from snaplinks.common.headers import get_forwarded_path_prefix
from snaplinks.errors import NotFoundError
from snaplinks.identity import Requester

from ..dependencies import get_requester

router = APIRouter()

template_dir = os.path.join(os.path.dirname(__file__), "..", "templates")
templates = Jinja2Templates(directory=template_dir)


def _path_prefix_for_html(request: Request) -> str:
    """Prefix for links in rendered pages; only set when behind a proxy."""
    return get_forwarded_path_prefix(request.headers)


def _not_found_page(request: Request) -> HTMLResponse:
    # Same page for unknown and private links
    return templates.TemplateResponse(
        request,
        "error.html",
        {"prefix": _path_prefix_for_html(request), "error_message": "This link does not exist."},
        status_code=status.HTTP_404_NOT_FOUND,
    )


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def homepage(request: Request):
    return templates.TemplateResponse(
        request,
        "index.html",
        {"prefix": _path_prefix_for_html(request)},
    )


# Must stay above /{short_code}: "health" is a valid short code.
@router.get("/health", include_in_schema=False)
async def health_check_web(request: Request):
    """Health check endpoint (simple version for load balancers)."""
    service = request.app.state.service

    health = await service.health_check()

    if health["overall"]:
        return {"status": "healthy"}
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Service unhealthy",
    )


@router.get("/{short_code}", include_in_schema=False)
async def redirect_to_asset(
    request: Request,
    short_code: str,
    requester: Requester = Depends(get_requester),
):
    """Redirect to the stored image, counting a view."""
    service = request.app.state.service

    try:
        resolution = await service.resolve(short_code, requester)
    except NotFoundError:
        return _not_found_page(request)

    # 302 so every visit comes back here and gets counted
    return RedirectResponse(
        url=resolution.location,
        status_code=status.HTTP_302_FOUND,
        headers={"Cache-Control": "no-store"},
    )
