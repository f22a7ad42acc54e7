"""Build service collaborators from configuration.

Shared by the server entry point and the command-line tools so both
talk to the same backends the same way.
"""

import logging
from typing import Optional

from .accounts import SupabaseAccountAdmin
from .database import create_database
from .database.cache import RedisCache
from .identity import (
    IdentityProvider,
    StaticTokenIdentityProvider,
    SupabaseIdentityProvider,
    parse_token_table,
)
from .service import ScreenshotService
from .shortcode import ShortCodeGenerator
from .storage import LocalStorage, StorageBackend, SupabaseStorage


def _require_supabase(config, what: str) -> None:
    if not config.supabase_url or not config.supabase_service_key:
        raise ValueError(f"{what} needs SUPABASE_URL and SUPABASE_SERVICE_KEY")


def build_storage(config, logger: Optional[logging.Logger] = None) -> StorageBackend:
    if config.storage_backend == "supabase":
        _require_supabase(config, "Supabase storage")
        return SupabaseStorage(
            supabase_url=config.supabase_url,
            service_key=config.supabase_service_key,
            bucket=config.supabase_bucket,
            logger=logger,
        )
    return LocalStorage(
        root=config.storage_root,
        public_base_url=config.public_files_url,
        logger=logger,
    )


def build_identity(config, logger: Optional[logging.Logger] = None) -> IdentityProvider:
    if config.auth_backend == "supabase":
        _require_supabase(config, "Supabase auth")
        return SupabaseIdentityProvider(
            supabase_url=config.supabase_url,
            api_key=config.supabase_service_key,
            logger=logger,
        )
    return StaticTokenIdentityProvider(parse_token_table(config.api_tokens), logger=logger)


def build_account_admin(config, logger: Optional[logging.Logger] = None) -> Optional[SupabaseAccountAdmin]:
    """Account administration is only available with a Supabase project."""
    if not config.supabase_url or not config.supabase_service_key:
        return None
    return SupabaseAccountAdmin(
        supabase_url=config.supabase_url,
        service_key=config.supabase_service_key,
        logger=logger,
    )


async def build_service(config, logger: Optional[logging.Logger] = None) -> ScreenshotService:
    """Create a ready-to-use service; connects the cache when one is configured."""
    logger = logger or logging.getLogger("snaplinks")

    db = create_database(config.database_url, logger=logger)

    cache = None
    if config.redis_url:
        logger.info("Connecting to Redis cache")
        cache = RedisCache(
            redis_url=config.redis_url,
            ttl_seconds=config.cache_ttl_seconds,
            logger=logger,
        )
        await cache.connect()
    else:
        logger.info("Redis caching disabled")

    return ScreenshotService(
        db=db,
        storage=build_storage(config, logger),
        cache=cache,
        short_code_generator=ShortCodeGenerator(default_length=config.short_code_length),
        account_admin=build_account_admin(config, logger),
        logger=logger,
        max_collision_retries=config.max_collision_retries,
        max_upload_bytes=config.max_upload_bytes,
        allowed_image_types=config.allowed_image_types,
    )
