"""Request-scoped dependencies shared by API and web routes."""

from fastapi import Request

from snaplinks.common.headers import build_base_url, extract_bearer_token, get_forwarded_path_prefix
from snaplinks.common.url_builder import build_short_url, join_path_prefixes
from snaplinks.identity import Requester
from snaplinks.service import ScreenshotService


def get_service(request: Request) -> ScreenshotService:
    return request.app.state.service


async def get_requester(request: Request) -> Requester:
    """Resolve the caller once per request; cached on request.state."""
    cached = getattr(request.state, "requester", None)
    if cached is not None:
        return cached

    token = extract_bearer_token(request.headers)
    requester = await request.app.state.identity.authenticate(token)
    request.state.requester = requester
    return requester


def short_url_for(request: Request, short_code: str) -> str:
    """Absolute short link, honouring proxy headers and the configured prefix."""
    config = request.app.state.config
    base_url = build_base_url(
        headers=request.headers,
        fallback_base_url=config.base_url,
        request_scheme=request.url.scheme,
        request_host=request.headers.get("host"),
    )
    prefix = join_path_prefixes([get_forwarded_path_prefix(request.headers), config.path_prefix])
    return build_short_url(short_code=short_code, base_url=base_url, path_prefix=prefix)
