"""Short link URL construction."""

from typing import Iterable


def join_path_prefixes(prefixes: Iterable[str]) -> str:
    """Join prefix fragments such as '/proxy/' and 's' into 'proxy/s'."""
    return "/".join(p.strip("/") for p in prefixes if p and p.strip("/"))


def build_short_url(short_code: str, base_url: str, path_prefix: str = "") -> str:
    """Absolute short link: ``<base>[/<prefix>]/<code>``."""
    segments = [base_url.rstrip("/")]
    prefix = join_path_prefixes([path_prefix])
    if prefix:
        segments.append(prefix)
    segments.append(short_code)
    return "/".join(segments)
