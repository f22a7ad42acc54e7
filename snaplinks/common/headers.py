"""Request header helpers: proxy-aware base URLs and bearer tokens."""

from typing import Mapping, Optional


def _lower(headers: Mapping[str, str]) -> dict:
    return {k.lower(): v for k, v in headers.items()}


def build_base_url(
    headers: Mapping[str, str],
    fallback_base_url: str,
    request_scheme: Optional[str] = None,
    request_host: Optional[str] = None,
) -> str:
    """Base URL that short links should be built on.

    Priority:
    1. X-Forwarded-Proto + X-Forwarded-Host (behind a proxy)
    2. Request scheme + Host
    3. Configured base URL

    Returns:
        Base URL without trailing slash (e.g., https://example.com)
    """
    lowered = _lower(headers)
    proto = lowered.get("x-forwarded-proto")
    host = lowered.get("x-forwarded-host")
    if proto and host:
        # Proxies may append hops: "https, http"
        return f"{proto.split(',')[0].strip()}://{host.split(',')[0].strip()}"

    if request_scheme and request_host:
        return f"{request_scheme}://{request_host}"

    return fallback_base_url.rstrip("/")


def get_forwarded_path_prefix(headers: Mapping[str, str]) -> str:
    """Path prefix a proxy stripped before forwarding (X-Forwarded-Prefix).

    Returns:
        Normalized prefix with leading slash and no trailing one (e.g. '/p'), or ''
    """
    value = _lower(headers).get("x-forwarded-prefix")
    if not value:
        return ""
    stripped = value.strip().strip("/")
    return "/" + stripped if stripped else ""


def extract_bearer_token(headers: Mapping[str, str]) -> Optional[str]:
    """Token from ``Authorization: Bearer <token>``, or None."""
    value = _lower(headers).get("authorization")
    if not value:
        return None
    scheme, _, token = value.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
